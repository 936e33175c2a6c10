from django.urls import reverse


def serialize_reference(obj):
    if obj is None:
        return None
    return {"id": obj.pk, "name": obj.name}


def serialize_user_summary(user):
    if user is None:
        return None
    return {"id": user.pk, "username": user.username, "email": user.email}


def serialize_user(user):
    return {
        "id": user.pk,
        "username": user.username,
        "email": user.email,
        "nic": user.nic,
        "empId": user.emp_id,
        "role": user.role_name,
        "roleId": user.role_id,
        "districtId": user.district_id,
        "district": serialize_reference(user.district),
        "skillId": user.skill_id,
        "skill": serialize_reference(user.skill),
        "branch": user.branch,
        "description": user.description,
        "attachment": reverse("accounts:root_user_document", args=[user.pk]) if user.attachment else None,
        "status": user.registration_status,
        "isVerified": user.is_verified,
        "rejectionReason": user.rejection_reason,
        "createdAt": user.date_joined.isoformat(),
    }
