import json
import re

from django.conf import settings
from django.core.paginator import Paginator
from django.http import JsonResponse, QueryDict
from django.utils.datastructures import MultiValueDict
from django.views import View
from django.views.decorators.csrf import csrf_exempt


class ApiError(Exception):
    """Error that is rendered as ``{"message": ...}`` with ``status_code``."""

    status_code = 400
    default_message = "Bad request."

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def as_payload(self):
        payload = {"message": self.message}
        payload.update(self.extra)
        return payload


class AuthenticationFailed(ApiError):
    status_code = 401
    default_message = "Unauthorized: No token provided"


class Forbidden(ApiError):
    status_code = 403
    default_message = "You do not have permission to perform this action."


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found."


class Conflict(ApiError):
    status_code = 409
    default_message = "Conflict."


def form_error(form):
    """Turn a bound, invalid form into an ``ApiError``."""
    errors = {field: [str(error) for error in field_errors] for field, field_errors in form.errors.items()}
    messages = errors.get("__all__", [])
    if not messages:
        for field, field_errors in errors.items():
            messages.extend(f"{field}: {error}" for error in field_errors)
    return ApiError(" ".join(messages) or ApiError.default_message, errors=errors)


def request_data(request):
    """Return ``(data, files)`` for JSON, urlencoded and multipart bodies, any method."""
    if request.content_type == "application/json":
        if not request.body:
            return {}, MultiValueDict()
        try:
            data = json.loads(request.body)
        except ValueError:
            raise ApiError("Malformed JSON body.")
        if not isinstance(data, dict):
            raise ApiError("JSON body must be an object.")
        return data, MultiValueDict()
    if request.method == "POST":
        return request.POST, request.FILES
    if request.content_type.startswith("multipart/"):
        return request.parse_file_upload(request.META, request)
    return QueryDict(request.body, encoding=request.encoding), MultiValueDict()


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_case_keys(data):
    """Map camelCase request keys (``deviceId``) onto form field names (``device_id``)."""
    return {_CAMEL_BOUNDARY.sub(r"_\1", key).lower(): value for key, value in data.items()}


def paginate(items, params):
    """Slice ``items`` into the requested page.

    Returns ``(page_items, pagination)``; ``pagination`` is ``None`` when the
    caller did not ask for a page. The page number is clamped into
    ``[1, totalPages]`` and unparseable values mean page 1.
    """
    if "page" not in params:
        return list(items), None
    try:
        page_size = int(params.get("pageSize", settings.DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError):
        page_size = settings.DEFAULT_PAGE_SIZE
    page_size = min(max(page_size, 1), settings.MAX_PAGE_SIZE)
    try:
        number = int(params.get("page"))
    except (TypeError, ValueError):
        number = 1

    paginator = Paginator(items, page_size)
    page = paginator.page(max(1, min(number, paginator.num_pages)))
    return list(page.object_list), {
        "page": page.number,
        "pageSize": page_size,
        "totalPages": paginator.num_pages,
        "totalItems": paginator.count,
    }


class TokenRequiredMixin:
    """Require a user resolved from a valid bearer token."""

    def check_authentication(self, request):
        if not request.user.is_authenticated:
            raise AuthenticationFailed(getattr(request, "token_error", None))
        if not request.user.is_verified:
            raise Forbidden("Account not verified yet")

    def dispatch(self, request, *args, **kwargs):
        self.check_authentication(request)
        return super().dispatch(request, *args, **kwargs)


def require_role(user, *roles):
    if roles and not user.has_role(*roles):
        raise Forbidden(f"Forbidden: Requires one of these roles: {', '.join(roles)}")


class RoleRequiredMixin(TokenRequiredMixin):
    allowed_roles = ()

    def check_authentication(self, request):
        super().check_authentication(request)
        require_role(request.user, *self.allowed_roles)


class ApiView(View):
    @classmethod
    def as_view(cls, **initkwargs):
        return csrf_exempt(super().as_view(**initkwargs))

    def http_method_not_allowed(self, request, *args, **kwargs):
        response = JsonResponse({"message": f"Method {request.method} not allowed."}, status=405)
        response["Allow"] = ", ".join(self._allowed_methods())
        return response
