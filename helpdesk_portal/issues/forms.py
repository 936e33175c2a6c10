from django import forms
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import UploadedFile

from accounts.models import Role, User
from helpdesk.validators import validate_attachment

from .models import Issue, normalize_status
from .reports import REPORT_TYPES


class IssueForm(forms.ModelForm):
    class Meta:
        model = Issue
        fields = ["device_id", "complaint_type", "description", "priority_level", "under_warranty", "branch", "attachment"]

    def __init__(self, *args, district=None, **kwargs):
        self.district = district
        super().__init__(*args, **kwargs)

    def clean_attachment(self):
        attachment = self.cleaned_data.get("attachment")
        if isinstance(attachment, UploadedFile):
            validate_attachment(attachment)
        return attachment

    def clean(self):
        cleaned_data = super().clean()
        if self.district is None or not self.district.is_head_office:
            cleaned_data["branch"] = ""
        elif not (cleaned_data.get("branch") or "").strip():
            self.add_error("branch", "Branch is required for the head office.")
        return cleaned_data

    def save(self, commit=True):
        issue = super().save(commit=False)
        issue.district = self.district
        issue.branch = self.cleaned_data["branch"].strip()
        if commit and issue._state.adding:
            issue.save()
        elif commit:
            # status and assignment are only written by the workflow
            issue.save(update_fields=[*self.Meta.fields, "district", "updated_at"])
        return issue


def issue_form_data(issue, data):
    """Fill fields missing from a partial update with the issue's current values."""
    merged = {field: getattr(issue, field) for field in IssueForm.Meta.fields if field != "attachment"}
    merged.update(data)
    return merged


class TransitionForm(forms.Form):
    comment = forms.CharField(required=False)


class AssignTechnicianForm(TransitionForm):
    technical_officer_id = forms.ModelChoiceField(
        queryset=User.objects.filter(
            role__name=Role.TECHNICAL_OFFICER,
            registration_status=User.RegistrationStatus.APPROVED,
            is_active=True,
        ),
        error_messages={
            "required": "Technical officer is required.",
            "invalid_choice": "Technical officer not found.",
        },
    )


class ReviewForm(TransitionForm):
    is_approved = forms.BooleanField(required=False)


class ResolveForm(TransitionForm):
    resolution_details = forms.CharField(required=False)


class StatusUpdateForm(ResolveForm):
    status = forms.CharField(error_messages={"required": "Status is required."})

    allowed_statuses = None

    def clean_status(self):
        status = normalize_status(self.cleaned_data["status"])
        if status is None or (self.allowed_statuses and status not in self.allowed_statuses):
            raise ValidationError(f"Invalid status: {self.cleaned_data['status']}")
        return status


class TechnicianUpdateForm(StatusUpdateForm):
    allowed_statuses = (
        Issue.Status.IN_PROGRESS,
        Issue.Status.RESOLVED,
        Issue.Status.ADD_TO_PROCUREMENT,
    )


class ReportForm(forms.Form):
    type = forms.ChoiceField(
        choices=[(report_type, report_type) for report_type in REPORT_TYPES],
        error_messages={"invalid_choice": "Invalid report type"},
    )
    start_date = forms.DateField(input_formats=["%Y-%m-%d"])
    end_date = forms.DateField(input_formats=["%Y-%m-%d"])

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get("start_date")
        end_date = cleaned_data.get("end_date")
        if start_date and end_date and start_date > end_date:
            raise ValidationError("Start date must be on or before end date.")
        return cleaned_data
