import logging
from datetime import datetime

from django.db import transaction
from django.db.models import Count, Q
from django.http import FileResponse, Http404, JsonResponse
from django.shortcuts import get_object_or_404

from accounts.models import Role, User
from accounts.serializers import serialize_reference, serialize_user_summary
from helpdesk.api import (
    ApiError,
    ApiView,
    Forbidden,
    RoleRequiredMixin,
    TokenRequiredMixin,
    form_error,
    paginate,
    request_data,
    require_role,
    snake_case_keys,
)

from .forms import (
    AssignTechnicianForm,
    IssueForm,
    ReportForm,
    ResolveForm,
    ReviewForm,
    StatusUpdateForm,
    TechnicianUpdateForm,
    TransitionForm,
    issue_form_data,
)
from .models import Issue, IssueEvent, normalize_status
from .notifications import send_submission_email
from .reports import build_report
from .serializers import serialize_event, serialize_issue
from .workflow import TRANSITIONS, apply_transition, transition_for_status

logger = logging.getLogger(__name__)


def issue_queryset():
    return Issue.objects.select_related("district", "submitter", "assigned_to").prefetch_related("events__actor")


def get_visible_issue(user, pk):
    return get_object_or_404(issue_queryset().visible_to(user), pk=pk)


def apply_issue_filters(queryset, params):
    query = params.get("q", "").strip()
    status = params.get("status", "").strip()
    complaint_type = params.get("complaintType", "").strip()
    priority_level = params.get("priorityLevel", "").strip()
    start_date = params.get("startDate", "").strip()
    end_date = params.get("endDate", "").strip()

    if query:
        queryset = queryset.filter(Q(device_id__icontains=query) | Q(description__icontains=query))
    if status:
        queryset = queryset.filter(status=normalize_status(status) or status)
    if complaint_type:
        queryset = queryset.filter(complaint_type=complaint_type)
    if priority_level:
        queryset = queryset.filter(priority_level=priority_level)

    if start_date:
        try:
            start_dt = datetime.strptime(start_date, "%Y-%m-%d").date()
            queryset = queryset.filter(submitted_at__date__gte=start_dt)
        except ValueError:
            pass
    if end_date:
        try:
            end_dt = datetime.strptime(end_date, "%Y-%m-%d").date()
            queryset = queryset.filter(submitted_at__date__lte=end_dt)
        except ValueError:
            pass
    return queryset


def issue_list_response(queryset, params):
    page_items, pagination = paginate(apply_issue_filters(queryset, params), params)
    payload = {"issues": [serialize_issue(issue) for issue in page_items]}
    if pagination:
        payload["pagination"] = pagination
    return JsonResponse(payload)


def issue_response(issue, message, status=200):
    issue = issue_queryset().get(pk=issue.pk)
    return JsonResponse({"message": message, "issue": serialize_issue(issue)}, status=status)


class IssueListView(TokenRequiredMixin, ApiView):
    def get(self, request):
        return issue_list_response(issue_queryset().visible_to(request.user), request.GET)

    def post(self, request):
        require_role(request.user, Role.SUBJECT_CLERK)
        data, files = request_data(request)
        form = IssueForm(snake_case_keys(data), files, district=request.user.district)
        if not form.is_valid():
            raise form_error(form)

        issue = form.save(commit=False)
        issue.submitter = request.user
        issue.status = Issue.Status.PENDING
        issue.save()
        IssueEvent.objects.create(
            issue=issue,
            actor=request.user,
            action=IssueEvent.Action.SUBMITTED,
            to_status=issue.status,
        )
        send_submission_email(issue)
        logger.info("Issue %s submitted by user %s", issue.pk, request.user.pk)
        return issue_response(issue, "Issue submitted successfully", status=201)


class IssueDetailView(TokenRequiredMixin, ApiView):
    def get_editable_issue(self, request, pk):
        """Lock and return the caller's own ``Pending`` issue. Call inside ``transaction.atomic()``."""
        issue = get_object_or_404(Issue.objects.select_for_update().visible_to(request.user), pk=pk)
        if issue.submitter_id != request.user.id:
            raise Forbidden("You can only modify your own issues.")
        if issue.status != Issue.Status.PENDING:
            raise Forbidden("Only issues in 'Pending' status can be modified.")
        return issue

    def get(self, request, pk):
        return JsonResponse(serialize_issue(get_visible_issue(request.user, pk)))

    def put(self, request, pk):
        data, files = request_data(request)
        data = snake_case_keys(data)
        if data.get("status"):
            return self.update_status(request, pk, data)

        with transaction.atomic():
            issue = self.get_editable_issue(request, pk)
            previous_attachment = issue.attachment.name if issue.attachment else None
            form = IssueForm(issue_form_data(issue, data), files, instance=issue, district=issue.district)
            if not form.is_valid():
                raise form_error(form)
            issue = form.save()
            IssueEvent.objects.create(
                issue=issue,
                actor=request.user,
                action=IssueEvent.Action.EDITED,
                from_status=issue.status,
                to_status=issue.status,
            )
        if previous_attachment and previous_attachment != (issue.attachment.name if issue.attachment else None):
            issue.attachment.storage.delete(previous_attachment)
        logger.info("Issue %s edited by user %s", issue.pk, request.user.pk)
        return issue_response(issue, "Issue updated successfully")

    def update_status(self, request, pk, data):
        issue = get_visible_issue(request.user, pk)
        form = StatusUpdateForm(data)
        if not form.is_valid():
            raise form_error(form)
        status = form.cleaned_data["status"]
        transition = transition_for_status(issue, status, request.user)
        if transition is None:
            raise Forbidden(f"You cannot move this issue to '{status}'.")

        technician = None
        if transition.requires_technician:
            assign_form = AssignTechnicianForm(data)
            if not assign_form.is_valid():
                raise form_error(assign_form)
            technician = assign_form.cleaned_data["technical_officer_id"]
        changes = {}
        if status == Issue.Status.RESOLVED and form.cleaned_data["resolution_details"]:
            changes["resolution_details"] = form.cleaned_data["resolution_details"]
        issue = apply_transition(
            issue,
            transition.action,
            request.user,
            comment=form.cleaned_data["comment"],
            technician=technician,
            changes=changes,
        )
        return issue_response(issue, f"Issue status updated to {status}")

    def delete(self, request, pk):
        with transaction.atomic():
            issue = self.get_editable_issue(request, pk)
            attachment = issue.attachment.name if issue.attachment else None
            issue.delete()
        if attachment:
            issue.attachment.storage.delete(attachment)
        logger.info("Issue %s deleted by user %s", pk, request.user.pk)
        return JsonResponse({"message": "Issue deleted successfully"})


class IssueTransitionView(RoleRequiredMixin, ApiView):
    """POST endpoint running one workflow ``action`` on an issue."""

    action = None
    form_class = TransitionForm
    success_message = "Issue updated successfully"

    @property
    def allowed_roles(self):
        return TRANSITIONS[self.action].roles

    def get_transition_kwargs(self, form):
        return {"comment": form.cleaned_data["comment"]}

    def post(self, request, pk):
        issue = get_visible_issue(request.user, pk)
        data, _ = request_data(request)
        form = self.form_class(snake_case_keys(data))
        if not form.is_valid():
            raise form_error(form)
        issue = apply_transition(issue, self.action, request.user, **self.get_transition_kwargs(form))
        return issue_response(issue, self.success_message)


class AssignTechnicianView(IssueTransitionView):
    action = IssueEvent.Action.ASSIGN
    form_class = AssignTechnicianForm
    success_message = "Technical officer assigned successfully"

    def get_transition_kwargs(self, form):
        kwargs = super().get_transition_kwargs(form)
        kwargs["technician"] = form.cleaned_data["technical_officer_id"]
        return kwargs


class ResolveIssueView(IssueTransitionView):
    action = IssueEvent.Action.RESOLVE
    form_class = ResolveForm
    success_message = "Issue resolved successfully"

    def get_transition_kwargs(self, form):
        kwargs = super().get_transition_kwargs(form)
        if form.cleaned_data["resolution_details"]:
            kwargs["changes"] = {"resolution_details": form.cleaned_data["resolution_details"]}
        return kwargs


class IssueHistoryView(TokenRequiredMixin, ApiView):
    def get(self, request, pk):
        issue = get_visible_issue(request.user, pk)
        return JsonResponse(
            {
                "issueId": issue.pk,
                "comment": issue.comment_log,
                "events": [serialize_event(event) for event in issue.events.all()],
            }
        )


class IssueAttachmentView(TokenRequiredMixin, ApiView):
    def get(self, request, pk):
        issue = get_visible_issue(request.user, pk)
        if not issue.attachment:
            raise Http404("File not found.")

        inline = request.GET.get("inline") == "1"
        filename = issue.attachment.name.rsplit("/", maxsplit=1)[-1]
        return FileResponse(
            issue.attachment.open("rb"),
            as_attachment=not inline,
            filename=filename,
        )


class TechnicalOfficerListView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.SUPER_USER, Role.ROOT)

    def get(self, request):
        officers = (
            User.objects.filter(
                role__name=Role.TECHNICAL_OFFICER,
                registration_status=User.RegistrationStatus.APPROVED,
                is_active=True,
            )
            .select_related("skill", "district")
            .annotate(
                active_issues=Count(
                    "assigned_issues",
                    filter=Q(assigned_issues__status__in=Issue.ACTIVE_STATUSES),
                )
            )
            .order_by("username")
        )
        skill_id = request.GET.get("skillId", "").strip()
        if skill_id.isdigit():
            officers = officers.filter(skill_id=int(skill_id))
        return JsonResponse(
            [
                {
                    **serialize_user_summary(officer),
                    "skill": serialize_reference(officer.skill),
                    "district": serialize_reference(officer.district),
                    "activeIssues": officer.active_issues,
                }
                for officer in officers
            ],
            safe=False,
        )


class IssueSummaryView(TokenRequiredMixin, ApiView):
    def get(self, request):
        queryset = apply_issue_filters(Issue.objects.visible_to(request.user), request.GET)
        counts = {row["status"]: row["count"] for row in queryset.values("status").annotate(count=Count("id")).order_by()}
        by_status = {status: counts.get(status, 0) for status in Issue.Status.values}
        return JsonResponse(
            {
                "total": sum(by_status.values()),
                "byStatus": by_status,
                "pendingApproval": sum(by_status[status] for status in Issue.PENDING_APPROVAL_STATUSES),
                "active": sum(by_status[status] for status in Issue.ACTIVE_STATUSES),
                "completed": sum(by_status[status] for status in Issue.COMPLETED_STATUSES),
                "rejected": sum(by_status[status] for status in Issue.REJECTED_STATUSES),
            }
        )


class MyAssignedIssuesView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.TECHNICAL_OFFICER,)

    def get(self, request):
        return issue_list_response(issue_queryset().filter(assigned_to=request.user), request.GET)


class TechnicianUpdateView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.TECHNICAL_OFFICER,)

    def post(self, request, pk):
        issue = get_visible_issue(request.user, pk)
        data, _ = request_data(request)
        form = TechnicianUpdateForm(snake_case_keys(data))
        if not form.is_valid():
            raise form_error(form)

        status = form.cleaned_data["status"]
        transition = transition_for_status(issue, status, request.user)
        if transition is None:
            raise ApiError(f"Invalid status: {status}")
        comment = form.cleaned_data["comment"].strip()
        text = f"Status updated to {status}: {comment}" if comment else f"Status updated to {status}"
        changes = {}
        if status == Issue.Status.RESOLVED and form.cleaned_data["resolution_details"]:
            changes["resolution_details"] = form.cleaned_data["resolution_details"]
        issue = apply_transition(issue, transition.action, request.user, comment=text, changes=changes)
        return issue_response(issue, "Issue updated successfully")


class ReviewListView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def get(self, request):
        return issue_list_response(issue_queryset().filter(status=Issue.Status.RESOLVED), request.GET)


class ConfirmReviewView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT,)

    def post(self, request, pk):
        issue = get_visible_issue(request.user, pk)
        data, _ = request_data(request)
        form = ReviewForm(snake_case_keys(data))
        if not form.is_valid():
            raise form_error(form)
        if form.cleaned_data["is_approved"]:
            action, message = IssueEvent.Action.REVIEW_APPROVE, "Issue confirmed as completed"
        else:
            action, message = IssueEvent.Action.REVIEW_REJECT, "Issue sent back to the technical officer"
        issue = apply_transition(issue, action, request.user, comment=form.cleaned_data["comment"])
        return issue_response(issue, message)


class ReportView(RoleRequiredMixin, ApiView):
    allowed_roles = (Role.ROOT, Role.SUPER_USER)

    def get(self, request):
        form = ReportForm(snake_case_keys(request.GET))
        if not form.is_valid():
            raise form_error(form)
        report_type = form.cleaned_data["type"]
        start_date = form.cleaned_data["start_date"]
        end_date = form.cleaned_data["end_date"]
        return JsonResponse(
            {
                "type": report_type,
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
                "data": build_report(report_type, start_date, end_date),
            }
        )
