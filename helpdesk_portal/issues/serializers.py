from django.urls import reverse

from accounts.serializers import serialize_reference, serialize_user_summary


def _isoformat(value):
    return value.isoformat() if value else None


def serialize_event(event):
    return {
        "id": event.pk,
        "action": event.action,
        "fromStatus": event.from_status,
        "toStatus": event.to_status,
        "text": event.text,
        "actor": serialize_user_summary(event.actor),
        "createdAt": event.timestamp,
    }


def serialize_issue(issue):
    return {
        "id": issue.pk,
        "deviceId": issue.device_id,
        "complaintType": issue.complaint_type,
        "description": issue.description,
        "priorityLevel": issue.priority_level,
        "location": issue.location_display,
        "districtId": issue.district_id,
        "district": serialize_reference(issue.district),
        "branch": issue.branch,
        "status": issue.status,
        "submittedAt": _isoformat(issue.submitted_at),
        "updatedAt": _isoformat(issue.updated_at),
        "lastStatusUpdatedAt": _isoformat(issue.last_status_updated_at),
        "attachment": reverse("issues:issue_attachment", args=[issue.pk]) if issue.attachment else None,
        "underWarranty": issue.under_warranty,
        "comment": issue.comment_log,
        "resolutionDetails": issue.resolution_details,
        "assignedTo": serialize_user_summary(issue.assigned_to),
        "submittedBy": serialize_user_summary(issue.submitter),
    }
