import logging

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404, JsonResponse

from accounts.tokens import InvalidToken, resolve_token_user

from .api import ApiError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


class BearerTokenMiddleware:
    """Authenticate ``Authorization: Bearer <token>`` requests.

    On ``/api/`` paths the bearer token is the only credential: the session
    user is dropped and a valid token replaces it. A bad token leaves the
    anonymous user in place and records ``request.token_error`` so the view
    can answer 401 with the reason.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith(API_PREFIX):
            return self.get_response(request)
        request.user = AnonymousUser()
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if header:
            scheme, _, token = header.partition(" ")
            if scheme.lower() != "bearer" or not token.strip():
                request.token_error = "Unauthorized: No token provided"
            else:
                try:
                    request.user = resolve_token_user(token.strip())
                except InvalidToken as error:
                    logger.info("Rejected bearer token for %s: %s", request.path, error)
                    request.token_error = str(error)
        return self.get_response(request)


class ApiExceptionMiddleware:
    """Render exceptions raised by ``/api/`` views as JSON."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not request.path.startswith(API_PREFIX):
            return None
        if isinstance(exception, ApiError):
            return JsonResponse(exception.as_payload(), status=exception.status_code)
        if isinstance(exception, Http404):
            return JsonResponse({"message": str(exception) or "Not found."}, status=404)
        if isinstance(exception, PermissionDenied):
            return JsonResponse({"message": str(exception) or "Access denied."}, status=403)
        if isinstance(exception, ValidationError):
            return JsonResponse({"message": " ".join(exception.messages)}, status=400)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return JsonResponse({"message": "Server error. Please try again later."}, status=500)
