import re

from django.core import mail
from django.test import Client
from django.urls import reverse

from helpdesk.api import Conflict, Forbidden
from helpdesk.testcases import HelpdeskTestCase

from .models import Issue, IssueEvent
from .workflow import TRANSITIONS, apply_transition, transition_for_status

LOG_LINE = re.compile(r"^(?P<text>.+) \((?P<username>[^)]+)\) at \d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class IssueLifecycleTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.issue = self.create_issue()

    def url(self, name):
        return reverse(f"issues:{name}", args=[self.issue.pk])

    def assert_status(self, response, status):
        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()["issue"]["status"], status)
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, status)

    def test_full_lifecycle(self):
        response = self.post_json(self.url("issue_approve_dc"), user=self.dc, data={"comment": "Looks valid"})
        self.assert_status(response, Issue.Status.DC_APPROVED)

        response = self.post_json(self.url("issue_approve_root"), user=self.root)
        self.assert_status(response, Issue.Status.SUPER_ADMIN_APPROVED)

        response = self.post_json(
            self.url("issue_assign_technician"),
            user=self.super_user,
            data={"technicalOfficerId": self.technician.pk, "comment": "Please visit today"},
        )
        self.assert_status(response, Issue.Status.ASSIGNED)
        self.assertEqual(self.issue.assigned_to, self.technician)

        response = self.post_json(self.url("assignment_start"), user=self.technician)
        self.assert_status(response, Issue.Status.IN_PROGRESS)

        response = self.post_json(
            self.url("assignment_resolve"),
            user=self.technician,
            data={"comment": "Replaced the PSU", "resolutionDetails": "New power supply unit"},
        )
        self.assert_status(response, Issue.Status.RESOLVED)
        self.assertEqual(self.issue.resolution_details, "New power supply unit")

        response = self.post_json(self.url("review_confirm"), user=self.root, data={"isApproved": True})
        self.assert_status(response, Issue.Status.COMPLETED)

        lines = response.json()["issue"]["comment"].split("\n\n")
        self.assertEqual(len(lines), 6)
        parsed = [LOG_LINE.match(line) for line in lines]
        self.assertTrue(all(parsed), lines)
        self.assertEqual(parsed[0]["text"], "Looks valid")
        self.assertEqual(parsed[0]["username"], "dcofficer")
        self.assertEqual(parsed[1]["text"], "Status changed to Approved by Super Admin")
        self.assertEqual(parsed[2]["username"], "superuser")
        self.assertEqual(parsed[-1]["username"], "rootadmin")

        actions = list(self.issue.events.values_list("action", flat=True))
        self.assertEqual(
            actions,
            [
                IssueEvent.Action.DC_APPROVE,
                IssueEvent.Action.ROOT_APPROVE,
                IssueEvent.Action.ASSIGN,
                IssueEvent.Action.START,
                IssueEvent.Action.RESOLVE,
                IssueEvent.Action.REVIEW_APPROVE,
            ],
        )
        self.assertEqual(len(mail.outbox), 6)

    def test_rejection_requires_comment(self):
        response = self.post_json(self.url("issue_reject_dc"), user=self.dc, data={"comment": "  "})

        self.assertEqual(response.status_code, 400)
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, Issue.Status.PENDING)
        self.assertFalse(self.issue.events.exists())

        response = self.post_json(self.url("issue_reject_dc"), user=self.dc, data={"comment": "Duplicate request"})
        self.assert_status(response, Issue.Status.DC_REJECTED)
        self.assertTrue(response.json()["issue"]["comment"].startswith("Duplicate request (dcofficer) at "))

    def test_root_rejection(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.DC_APPROVED)

        self.assertEqual(self.post_json(self.url("issue_reject_root"), user=self.root).status_code, 400)
        response = self.post_json(self.url("issue_reject_root"), user=self.root, data={"comment": "No budget"})
        self.assert_status(response, Issue.Status.SUPER_ADMIN_REJECTED)

    def test_repeated_approval_conflicts(self):
        self.post_json(self.url("issue_approve_dc"), user=self.dc)

        response = self.post_json(self.url("issue_approve_dc"), user=self.dc)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["currentStatus"], Issue.Status.DC_APPROVED)
        self.assertEqual(self.issue.events.count(), 1)

    def test_wrong_role_is_forbidden(self):
        response = self.post_json(self.url("issue_approve_dc"), user=self.clerk)

        self.assertEqual(response.status_code, 403)
        self.assertIn("dc", response.json()["message"])

    def test_dc_of_other_district_cannot_act(self):
        response = self.post_json(self.url("issue_approve_dc"), user=self.other_dc)

        self.assertEqual(response.status_code, 404)

    def test_missing_token_is_unauthorized(self):
        response = self.post_json(self.url("issue_approve_dc"))

        self.assertEqual(response.status_code, 401)

    def test_session_login_does_not_authenticate_api(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.DC_APPROVED)
        client = Client(enforce_csrf_checks=True)
        client.force_login(self.root)

        response = client.post(self.url("issue_approve_root"), data={}, content_type="application/json")

        self.assertEqual(response.status_code, 401)
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, Issue.Status.DC_APPROVED)

    def test_assignment_requires_technical_officer(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.SUPER_ADMIN_APPROVED)

        response = self.post_json(self.url("issue_assign_technician"), user=self.super_user)
        self.assertEqual(response.status_code, 400)
        self.assertIn("Technical officer is required.", response.json()["message"])

        response = self.post_json(
            self.url("issue_assign_technician"),
            user=self.super_user,
            data={"technicalOfficerId": self.dc.pk},
        )
        self.assertEqual(response.status_code, 400)
        self.issue.refresh_from_db()
        self.assertIsNone(self.issue.assigned_to)

    def test_only_assignee_can_start(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.ASSIGNED, assigned_to=self.technician)

        response = self.post_json(self.url("assignment_start"), user=self.other_technician)

        self.assertEqual(response.status_code, 404)
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, Issue.Status.ASSIGNED)

    def test_review_rejection_returns_issue_to_technician(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.RESOLVED, assigned_to=self.technician)

        response = self.post_json(self.url("review_confirm"), user=self.root, data={"isApproved": False})
        self.assertEqual(response.status_code, 400)

        response = self.post_json(
            self.url("review_confirm"),
            user=self.root,
            data={"isApproved": False, "comment": "Screen still flickers"},
        )
        self.assert_status(response, Issue.Status.IN_PROGRESS)
        self.assertEqual(self.issue.assigned_to, self.technician)

    def test_review_list(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.RESOLVED)
        self.create_issue()

        response = self.get_json(reverse("issues:review_list"), user=self.root)

        self.assertEqual([issue["id"] for issue in response.json()["issues"]], [self.issue.pk])
        self.assertEqual(self.get_json(reverse("issues:review_list"), user=self.super_user).status_code, 403)

    def test_reopen_clears_assignment_and_restarts_approval(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.COMPLETED, assigned_to=self.technician)

        response = self.post_json(self.url("issue_reopen"), user=self.clerk, data={"comment": "Broke again"})
        self.assert_status(response, Issue.Status.REOPENED)
        self.assertIsNone(self.issue.assigned_to)

        response = self.post_json(self.url("issue_approve_dc"), user=self.dc)
        self.assert_status(response, Issue.Status.DC_APPROVED)

    def test_reopen_only_from_resolved_or_completed(self):
        response = self.post_json(self.url("issue_reopen"), user=self.dc)

        self.assertEqual(response.status_code, 409)

    def test_history(self):
        self.post_json(self.url("issue_approve_dc"), user=self.dc, data={"comment": "ok"})

        response = self.get_json(self.url("issue_history"), user=self.clerk)

        self.assertEqual(response.status_code, 200)
        events = response.json()["events"]
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["fromStatus"], Issue.Status.PENDING)
        self.assertEqual(events[0]["toStatus"], Issue.Status.DC_APPROVED)
        self.assertEqual(events[0]["actor"]["username"], "dcofficer")
        self.assertTrue(events[0]["createdAt"].endswith("Z"))


class ProcurementAndUpdateTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.issue = self.create_issue(status=Issue.Status.ASSIGNED, assigned_to=self.technician)
        self.update_url = reverse("issues:technician_update", args=[self.issue.pk])
        self.detail_url = reverse("issues:issue_detail", args=[self.issue.pk])

    def test_technician_update_path_to_completion(self):
        response = self.post_json(self.update_url, user=self.technician, data={"status": "In_Progress"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["issue"]["status"], Issue.Status.IN_PROGRESS)
        self.assertIn("Status updated to In Progress (technician)", response.json()["issue"]["comment"])

        response = self.post_json(
            self.update_url,
            user=self.technician,
            data={"status": "Add_To_Procurement", "comment": "Needs a new disk"},
        )
        self.assertEqual(response.json()["issue"]["status"], Issue.Status.ADD_TO_PROCUREMENT)
        self.assertIn("Status updated to Add_To_Procurement: Needs a new disk", response.json()["issue"]["comment"])

        response = self.put_json(self.detail_url, user=self.super_user, data={"status": "Under Procurement"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["issue"]["status"], Issue.Status.UNDER_PROCUREMENT)

        response = self.put_json(self.detail_url, user=self.super_user, data={"status": "Completed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["issue"]["status"], Issue.Status.COMPLETED)

    def test_technician_update_rejects_other_statuses(self):
        response = self.post_json(self.update_url, user=self.technician, data={"status": "Completed"})

        self.assertEqual(response.status_code, 400)

    def test_technician_update_out_of_order_conflicts(self):
        response = self.post_json(self.update_url, user=self.technician, data={"status": "Resolved"})

        self.assertEqual(response.status_code, 409)

    def test_status_put_without_matching_transition(self):
        response = self.put_json(self.detail_url, user=self.super_user, data={"status": "Resolved"})

        self.assertEqual(response.status_code, 403)

    def test_status_put_with_unknown_status(self):
        response = self.put_json(self.detail_url, user=self.super_user, data={"status": "Archived"})

        self.assertEqual(response.status_code, 400)


class WorkflowUnitTests(HelpdeskTestCase):
    def test_every_transition_targets_a_known_status(self):
        for transition in TRANSITIONS.values():
            self.assertIn(transition.target, Issue.Status.values)
            for source in transition.sources:
                self.assertIn(source, Issue.Status.values)

    def test_rejections_require_comment(self):
        required = {action for action, transition in TRANSITIONS.items() if transition.comment_required}
        self.assertEqual(
            required,
            {IssueEvent.Action.DC_REJECT, IssueEvent.Action.ROOT_REJECT, IssueEvent.Action.REVIEW_REJECT},
        )

    def test_transition_for_status_prefers_matching_source(self):
        issue = self.create_issue(status=Issue.Status.RESOLVED)
        self.assertEqual(
            transition_for_status(issue, Issue.Status.IN_PROGRESS, self.root).action,
            IssueEvent.Action.REVIEW_REJECT,
        )
        self.assertIsNone(transition_for_status(issue, Issue.Status.IN_PROGRESS, self.clerk))

        issue.status = Issue.Status.ASSIGNED
        self.assertEqual(
            transition_for_status(issue, Issue.Status.IN_PROGRESS, self.technician).action,
            IssueEvent.Action.START,
        )

    def test_apply_transition_checks_role_and_source(self):
        issue = self.create_issue()

        with self.assertRaises(Forbidden):
            apply_transition(issue, IssueEvent.Action.DC_APPROVE, self.super_user)
        with self.assertRaises(Conflict):
            apply_transition(issue, IssueEvent.Action.ROOT_APPROVE, self.root)

        updated = apply_transition(issue, IssueEvent.Action.DC_APPROVE, self.dc)
        self.assertEqual(updated.status, Issue.Status.DC_APPROVED)
        self.assertIsNotNone(updated.last_status_updated_at)

    def test_assignee_check(self):
        issue = self.create_issue(status=Issue.Status.ASSIGNED, assigned_to=self.technician)

        with self.assertRaises(Forbidden):
            apply_transition(issue, IssueEvent.Action.START, self.other_technician)
