from django.conf import settings
from django.core.mail import send_mail


def send_submission_email(issue):
    if not issue.submitter.email:
        return
    send_mail(
        subject=f"Issue Submitted: #{issue.pk}",
        message=(
            f"Dear {issue.submitter.username},\n\n"
            f"Your issue for device {issue.device_id} has been submitted successfully.\n"
            f"Issue ID: {issue.pk}\n"
            f"Status: {issue.status}\n\n"
            "You will be notified when there is an update."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[issue.submitter.email],
        fail_silently=True,
    )


def send_status_change_email(issue, old_status, new_status):
    if not issue.submitter.email:
        return
    send_mail(
        subject=f"Issue Status Updated: #{issue.pk}",
        message=(
            f"Dear {issue.submitter.username},\n\n"
            f"The status of your issue #{issue.pk} ({issue.device_id}) changed from "
            f"{old_status} to {new_status}.\n\n"
            "Thank you."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[issue.submitter.email],
        fail_silently=True,
    )
