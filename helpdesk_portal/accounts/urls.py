from django.urls import path

from .views import (
    ApproveUserView,
    DistrictListView,
    DistrictsByIdsView,
    ForgotPasswordView,
    LoginView,
    RegisterView,
    RegistrationDocumentView,
    RejectUserView,
    ResetPasswordView,
    RoleListView,
    RootRoleDeleteView,
    RootRoleListView,
    RootUserListView,
    SkillListView,
    UserProfileView,
)

app_name = "accounts"

urlpatterns = [
    path("auth/login", LoginView.as_view(), name="login"),
    path("auth/register", RegisterView.as_view(), name="register"),
    path("auth/forgot-password", ForgotPasswordView.as_view(), name="forgot_password"),
    path("auth/reset-password/<str:token>", ResetPasswordView.as_view(), name="reset_password"),
    path("auth/user-profile", UserProfileView.as_view(), name="user_profile"),
    path("root/users", RootUserListView.as_view(), name="root_users"),
    path("root/pending-users", RootUserListView.as_view(pending_only=True), name="root_pending_users"),
    path("root/users/<int:pk>/document", RegistrationDocumentView.as_view(), name="root_user_document"),
    path("root/approve-user/<int:pk>", ApproveUserView.as_view(), name="root_approve_user"),
    path("root/reject-user/<int:pk>", RejectUserView.as_view(), name="root_reject_user"),
    path("root/roles", RootRoleListView.as_view(), name="root_roles"),
    path("root/roles/<int:pk>", RootRoleDeleteView.as_view(), name="root_role_delete"),
    path("roles", RoleListView.as_view(), name="roles"),
    path("districts", DistrictListView.as_view(), name="districts"),
    path("skills", SkillListView.as_view(), name="skills"),
    path("data/districts", DistrictListView.as_view(), name="data_districts"),
    path("data/districts/by-ids", DistrictsByIdsView.as_view(), name="data_districts_by_ids"),
    path("data/skills", SkillListView.as_view(), name="data_skills"),
]
