import logging

from django.db import transaction
from django.http import FileResponse, Http404, JsonResponse
from django.shortcuts import get_object_or_404

from helpdesk.api import (
    ApiError,
    ApiView,
    AuthenticationFailed,
    Forbidden,
    NotFound,
    RoleRequiredMixin,
    TokenRequiredMixin,
    form_error,
    paginate,
    request_data,
    snake_case_keys,
)

from .forms import ForgotPasswordForm, LoginForm, RegistrationForm, RejectUserForm, ResetPasswordForm, RoleForm
from .models import District, Role, Skill, User
from .notifications import (
    send_password_reset_email,
    send_registration_decision_email,
    send_registration_request_email,
)
from .serializers import serialize_reference, serialize_user
from .tokens import create_access_token

logger = logging.getLogger(__name__)


class LoginView(ApiView):
    def post(self, request):
        data, _ = request_data(request)
        form = LoginForm(data)
        if not form.is_valid():
            raise form_error(form)

        user = form.get_user()
        if user is None or not user.is_active or not user.check_password(form.cleaned_data["password"]):
            logger.info("Failed login attempt for %s", form.cleaned_data.get("nic") or form.cleaned_data.get("email"))
            raise AuthenticationFailed("Invalid credentials")
        if not user.is_verified:
            raise Forbidden("Account not verified yet")

        logger.info("User %s logged in as %s", user.pk, user.role_name)
        return JsonResponse(
            {
                "token": create_access_token(user),
                "role": user.role_name,
                "username": user.username,
                "email": user.email,
            }
        )


class RegisterView(ApiView):
    def post(self, request):
        data, files = request_data(request)
        form = RegistrationForm(snake_case_keys(data), files)
        if not form.is_valid():
            raise form_error(form)
        user = form.save()
        send_registration_request_email(user)
        logger.info("Registration %s submitted for role %s", user.pk, user.role_name)
        return JsonResponse({"message": "Registration submitted for approval"}, status=201)


class ForgotPasswordView(ApiView):
    def post(self, request):
        data, _ = request_data(request)
        form = ForgotPasswordForm(data)
        if not form.is_valid():
            raise form_error(form)
        user = form.get_user()
        if user is None:
            raise NotFound("User not found")
        token = user.issue_reset_token()
        send_password_reset_email(user, token)
        return JsonResponse({"message": "Reset link sent"})


class ResetPasswordView(ApiView):
    def post(self, request, token):
        data, _ = request_data(request)
        form = ResetPasswordForm(data, token=token)
        if not form.is_valid():
            raise form_error(form)
        user = form.save()
        logger.info("Password reset completed for user %s", user.pk)
        return JsonResponse({"message": "Password updated successfully"})


class UserProfileView(TokenRequiredMixin, ApiView):
    def get(self, request):
        return JsonResponse(serialize_user(request.user))


class RootUserListView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)
    pending_only = False

    def get(self, request):
        users = User.objects.select_related("role", "district", "skill").exclude(pk=request.user.pk)
        if self.pending_only:
            users = users.filter(registration_status=User.RegistrationStatus.PENDING)
        status = request.GET.get("status", "").strip()
        if status:
            users = users.filter(registration_status=status)
        page_items, pagination = paginate(users.order_by("-date_joined"), request.GET)
        payload = {"users": [serialize_user(user) for user in page_items]}
        if pagination:
            payload["pagination"] = pagination
        return JsonResponse(payload)


class RegistrationDocumentView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def get(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        if not user.attachment:
            raise Http404("File not found.")
        inline = request.GET.get("inline") == "1"
        filename = user.attachment.name.rsplit("/", maxsplit=1)[-1]
        return FileResponse(user.attachment.open("rb"), as_attachment=not inline, filename=filename)


class ApproveUserView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def post(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        user.approve()
        send_registration_decision_email(user)
        logger.info("User %s approved by %s", user.pk, request.user.pk)
        return JsonResponse({"message": "User approved successfully", "user": serialize_user(user)})


class RejectUserView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def post(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        if user.has_role(Role.ROOT):
            raise Forbidden("Root accounts cannot be rejected.")
        data, _ = request_data(request)
        form = RejectUserForm(snake_case_keys(data))
        if not form.is_valid():
            raise form_error(form)
        user.reject(form.cleaned_data["rejection_reason"].strip())
        send_registration_decision_email(user)
        logger.info("User %s rejected by %s", user.pk, request.user.pk)
        return JsonResponse({"message": "User rejected successfully", "user": serialize_user(user)})


class RoleListView(ApiView):
    def get(self, request):
        roles = Role.objects.exclude(name=Role.ROOT)
        return JsonResponse([serialize_reference(role) for role in roles], safe=False)


class RootRoleListView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def get(self, request):
        return JsonResponse([serialize_reference(role) for role in Role.objects.all()], safe=False)

    def post(self, request):
        data, _ = request_data(request)
        form = RoleForm(data)
        if not form.is_valid():
            raise form_error(form)
        role = form.save()
        logger.info("Role %s added by %s", role.name, request.user.pk)
        return JsonResponse(serialize_reference(role), status=201)


class RootRoleDeleteView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def delete(self, request, pk):
        with transaction.atomic():
            role = get_object_or_404(Role.objects.select_for_update(), pk=pk)
            if role.name in Role.BUILTIN:
                raise ApiError("Built-in roles cannot be deleted")
            if role.users.exists():
                raise ApiError("Cannot delete role in use by users")
            role.delete()
        return JsonResponse({"message": "Role deleted successfully"})


class DistrictListView(ApiView):
    def get(self, request):
        return JsonResponse([serialize_reference(district) for district in District.objects.all()], safe=False)


class DistrictsByIdsView(ApiView):
    def get(self, request):
        ids = request.GET.get("ids", "")
        if not ids.strip():
            raise ApiError("No district IDs provided")
        district_ids = [int(part) for part in ids.split(",") if part.strip().isdigit()]
        if not district_ids:
            raise ApiError("Invalid district IDs")
        districts = District.objects.filter(pk__in=district_ids)
        return JsonResponse({"districts": [serialize_reference(district) for district in districts]})


class SkillListView(ApiView):
    def get(self, request):
        return JsonResponse([serialize_reference(skill) for skill in Skill.objects.all()], safe=False)
