from django.urls import path

from .models import IssueEvent
from .views import (
    AssignTechnicianView,
    ConfirmReviewView,
    IssueAttachmentView,
    IssueDetailView,
    IssueHistoryView,
    IssueListView,
    IssueSummaryView,
    IssueTransitionView,
    MyAssignedIssuesView,
    ReportView,
    ResolveIssueView,
    ReviewListView,
    TechnicalOfficerListView,
    TechnicianUpdateView,
)

app_name = "issues"

Action = IssueEvent.Action

urlpatterns = [
    path("issues", IssueListView.as_view(), name="issue_list"),
    path("issues/summary", IssueSummaryView.as_view(), name="issue_summary"),
    path("issues/technical-officers", TechnicalOfficerListView.as_view(), name="technical_officers"),
    path("issues/technical-officers/all", TechnicalOfficerListView.as_view(), name="technical_officers_all"),
    path("issues/<int:pk>", IssueDetailView.as_view(), name="issue_detail"),
    path("issues/<int:pk>/history", IssueHistoryView.as_view(), name="issue_history"),
    path("issues/<int:pk>/attachment", IssueAttachmentView.as_view(), name="issue_attachment"),
    path(
        "issues/<int:pk>/approve-dc",
        IssueTransitionView.as_view(action=Action.DC_APPROVE, success_message="Issue approved successfully"),
        name="issue_approve_dc",
    ),
    path(
        "issues/<int:pk>/reject-dc",
        IssueTransitionView.as_view(action=Action.DC_REJECT, success_message="Issue rejected successfully"),
        name="issue_reject_dc",
    ),
    path(
        "issues/<int:pk>/approve-root",
        IssueTransitionView.as_view(action=Action.ROOT_APPROVE, success_message="Issue approved successfully"),
        name="issue_approve_root",
    ),
    path(
        "issues/<int:pk>/reject-root",
        IssueTransitionView.as_view(action=Action.ROOT_REJECT, success_message="Issue rejected successfully"),
        name="issue_reject_root",
    ),
    path(
        "issues/<int:pk>/reopen",
        IssueTransitionView.as_view(action=Action.REOPEN, success_message="Issue reopened successfully"),
        name="issue_reopen",
    ),
    path("issues/<int:pk>/assign-technician", AssignTechnicianView.as_view(), name="issue_assign_technician"),
    path("assignments/my-issues", MyAssignedIssuesView.as_view(), name="my_issues"),
    path(
        "assignments/<int:pk>/start",
        IssueTransitionView.as_view(action=Action.START, success_message="Work started on issue"),
        name="assignment_start",
    ),
    path("assignments/<int:pk>/resolve", ResolveIssueView.as_view(), name="assignment_resolve"),
    path("updates/<int:pk>/update", TechnicianUpdateView.as_view(), name="technician_update"),
    path("reviews/review", ReviewListView.as_view(), name="review_list"),
    path("reviews/<int:pk>/confirm", ConfirmReviewView.as_view(), name="review_confirm"),
    path("reports/generate", ReportView.as_view(), name="report_generate"),
]
