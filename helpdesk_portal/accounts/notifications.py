from django.conf import settings
from django.core.mail import send_mail


def send_registration_request_email(user):
    if not settings.ROOT_EMAIL:
        return
    send_mail(
        subject="New Registration Request",
        message=(
            "A new account is waiting for approval.\n\n"
            f"Username: {user.username}\n"
            f"Email: {user.email}\n"
            f"Role: {user.role_name}\n"
            f"District: {user.district or 'N/A'}\n"
            f"Description: {user.description or 'N/A'}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[settings.ROOT_EMAIL],
        fail_silently=True,
    )


def send_registration_decision_email(user):
    if user.is_verified:
        subject = "Registration Approved"
        body = "your account has been approved. You can now log in."
    else:
        subject = "Registration Declined"
        body = f"unfortunately your registration was declined.\nReason: {user.rejection_reason}"
    send_mail(
        subject=subject,
        message=f"Hi {user.username},\n\n{body}",
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
        fail_silently=True,
    )


def send_password_reset_email(user, token):
    link = f"{settings.FRONTEND_URL}/reset-password/{token}"
    send_mail(
        subject="Reset Password",
        message=(
            f"Hi {user.username},\n\n"
            f"Use the link below to reset your password. It expires in "
            f"{settings.PASSWORD_RESET_TIMEOUT_MINUTES} minutes.\n\n{link}"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
        fail_silently=True,
    )
