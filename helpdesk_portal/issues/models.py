from datetime import timezone as dt_timezone

from django.conf import settings
from django.db import models

from accounts.models import District, Role


class IssueQuerySet(models.QuerySet):
    def visible_to(self, user):
        if not user.is_authenticated:
            return self.none()
        if user.has_role(Role.ROOT):
            return self
        if user.has_role(Role.SUPER_USER):
            return self.filter(branch=user.branch) if user.branch else self
        if user.has_role(Role.DC, Role.SUBJECT_CLERK):
            if user.district_id is None:
                return self.none()
            return self.filter(district_id=user.district_id)
        if user.has_role(Role.TECHNICAL_OFFICER):
            return self.filter(assigned_to=user)
        return self.none()


class Issue(models.Model):
    class Status(models.TextChoices):
        PENDING = "Pending", "Pending"
        DC_APPROVED = "Approved by DC/AC", "Approved by DC/AC"
        DC_REJECTED = "Rejected by DC/AC", "Rejected by DC/AC"
        SUPER_ADMIN_APPROVED = "Approved by Super Admin", "Approved by Super Admin"
        SUPER_ADMIN_REJECTED = "Rejected by Super Admin", "Rejected by Super Admin"
        ASSIGNED = "Assigned to Technician", "Assigned to Technician"
        IN_PROGRESS = "In Progress", "In Progress"
        UNDER_PROCUREMENT = "Under Procurement", "Under Procurement"
        RESOLVED = "Resolved", "Resolved"
        COMPLETED = "Completed", "Completed"
        REOPENED = "Reopened", "Reopened"
        ADD_TO_PROCUREMENT = "Add_To_Procurement", "Add To Procurement"

    class ComplaintType(models.TextChoices):
        COMPUTER_REPAIR = "Computer Repair", "Computer Repair"
        VIRUS_ISSUE = "Virus Issue", "Virus Issue"
        PERMISSIONS = "Permissions", "Permissions"
        NETWORK_ISSUES = "Network Issues", "Network Issues"
        OTHER = "Other", "Other"

    class Priority(models.TextChoices):
        LOW = "Low", "Low"
        MEDIUM = "Medium", "Medium"
        HIGH = "High", "High"

    PENDING_APPROVAL_STATUSES = (
        Status.PENDING,
        Status.REOPENED,
        Status.DC_APPROVED,
        Status.SUPER_ADMIN_APPROVED,
    )
    ACTIVE_STATUSES = (
        Status.ASSIGNED,
        Status.IN_PROGRESS,
        Status.ADD_TO_PROCUREMENT,
        Status.UNDER_PROCUREMENT,
        Status.RESOLVED,
    )
    COMPLETED_STATUSES = (Status.COMPLETED,)
    REJECTED_STATUSES = (Status.DC_REJECTED, Status.SUPER_ADMIN_REJECTED)

    device_id = models.CharField(max_length=100)
    complaint_type = models.CharField(max_length=30, choices=ComplaintType.choices)
    description = models.TextField()
    priority_level = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    district = models.ForeignKey(
        District,
        on_delete=models.PROTECT,
        related_name="issues",
        null=True,
        blank=True,
    )
    branch = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=30, choices=Status.choices, default=Status.PENDING)
    submitted_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_status_updated_at = models.DateTimeField(null=True, blank=True)
    attachment = models.FileField(upload_to="issue_attachments/%Y/%m/%d/", null=True, blank=True)
    under_warranty = models.BooleanField(default=False)
    submitter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="submitted_issues",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="assigned_issues",
        null=True,
        blank=True,
    )
    resolution_details = models.TextField(blank=True)

    objects = IssueQuerySet.as_manager()

    class Meta:
        ordering = ["-submitted_at", "-id"]

    def __str__(self):
        return f"Issue #{self.pk} ({self.device_id})"

    @property
    def location_display(self) -> str:
        if self.district is None:
            return self.branch
        if self.district.is_head_office and self.branch:
            return f"{self.district.name} - {self.branch}"
        return self.district.name

    @property
    def comment_log(self) -> str:
        return "\n\n".join(event.as_log_line() for event in self.events.all() if event.text)

    def save(self, *args, **kwargs):
        if self.complaint_type != self.ComplaintType.COMPUTER_REPAIR:
            self.under_warranty = False
        super().save(*args, **kwargs)


class IssueEvent(models.Model):
    class Action(models.TextChoices):
        SUBMITTED = "submitted", "Submitted"
        EDITED = "edited", "Edited"
        DC_APPROVE = "dc_approve", "DC approve"
        DC_REJECT = "dc_reject", "DC reject"
        ROOT_APPROVE = "root_approve", "Root approve"
        ROOT_REJECT = "root_reject", "Root reject"
        ASSIGN = "assign", "Assign"
        PROCURE = "procure", "Procure"
        START = "start", "Start"
        RESOLVE = "resolve", "Resolve"
        REQUEST_PROCUREMENT = "request_procurement", "Request procurement"
        COMPLETE = "complete", "Complete"
        REVIEW_APPROVE = "review_approve", "Review approve"
        REVIEW_REJECT = "review_reject", "Review reject"
        REOPEN = "reopen", "Reopen"

    issue = models.ForeignKey(Issue, on_delete=models.CASCADE, related_name="events")
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="issue_events",
    )
    action = models.CharField(max_length=30, choices=Action.choices)
    from_status = models.CharField(max_length=30, blank=True)
    to_status = models.CharField(max_length=30, blank=True)
    text = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.get_action_display()} on issue #{self.issue_id}"

    @property
    def timestamp(self) -> str:
        created = self.created_at.astimezone(dt_timezone.utc)
        return created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z"

    def as_log_line(self) -> str:
        return f"{self.text} ({self.actor.username}) at {self.timestamp}"


STATUS_ALIASES = {
    "DC Approved": Issue.Status.DC_APPROVED,
    "DC/AC Approved": Issue.Status.DC_APPROVED,
    "Approved by Verifying Officer": Issue.Status.DC_APPROVED,
    "DC Rejected": Issue.Status.DC_REJECTED,
    "DC/AC Rejected": Issue.Status.DC_REJECTED,
    "Rejected by Verifying Officer": Issue.Status.DC_REJECTED,
    "In_Progress": Issue.Status.IN_PROGRESS,
    "Add to Procurement": Issue.Status.ADD_TO_PROCUREMENT,
    "Procurement": Issue.Status.UNDER_PROCUREMENT,
}


def normalize_status(value):
    """Map a client supplied status (legacy spellings included) to a ``Issue.Status`` value, or ``None``."""
    value = (value or "").strip()
    if value in Issue.Status.values:
        return Issue.Status(value)
    return STATUS_ALIASES.get(value)
