from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse

from helpdesk.testcases import HelpdeskTestCase

from .forms import IssueForm, issue_form_data
from .models import Issue, IssueEvent, normalize_status
from .workflow import apply_transition


class IssueSubmissionTests(HelpdeskTestCase):
    def issue_data(self, **overrides):
        data = {
            "deviceId": "LAP-007",
            "complaintType": Issue.ComplaintType.VIRUS_ISSUE,
            "description": "Pop-ups appear on every start.",
            "priorityLevel": Issue.Priority.MEDIUM,
            "underWarranty": "true",
        }
        data.update(overrides)
        return data

    def test_clerk_submits_issue_with_attachment(self):
        upload = SimpleUploadedFile("screen.png", b"\x89PNG fake", content_type="image/png")

        response = self.client.post(
            reverse("issues:issue_list"),
            data=self.issue_data(attachment=upload),
            **self.auth(self.clerk),
        )

        self.assertEqual(response.status_code, 201)
        payload = response.json()["issue"]
        self.assertEqual(payload["status"], Issue.Status.PENDING)
        self.assertEqual(payload["deviceId"], "LAP-007")
        self.assertEqual(payload["location"], "Colombo")
        self.assertFalse(payload["underWarranty"])
        self.assertEqual(payload["comment"], "")
        self.assertEqual(payload["submittedBy"]["username"], "clerk")
        self.assertEqual(payload["attachment"], reverse("issues:issue_attachment", args=[payload["id"]]))

        issue = Issue.objects.get(pk=payload["id"])
        self.assertEqual(issue.district, self.colombo)
        self.assertEqual(issue.events.get().action, IssueEvent.Action.SUBMITTED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["clerk@example.com"])

    def test_warranty_is_kept_for_computer_repair(self):
        response = self.client.post(
            reverse("issues:issue_list"),
            data=self.issue_data(complaintType=Issue.ComplaintType.COMPUTER_REPAIR),
            **self.auth(self.clerk),
        )

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()["issue"]["underWarranty"])

    def test_json_submission(self):
        response = self.post_json(
            reverse("issues:issue_list"),
            user=self.clerk,
            data=self.issue_data(underWarranty=True),
        )

        self.assertEqual(response.status_code, 201)

    def test_head_office_issue_needs_branch(self):
        head_office_clerk = self.create_user("hoclerk", "subject_clerk", district=self.head_office)

        response = self.post_json(reverse("issues:issue_list"), user=head_office_clerk, data=self.issue_data())
        self.assertEqual(response.status_code, 400)
        self.assertIn("branch", response.json()["errors"])

        response = self.post_json(
            reverse("issues:issue_list"),
            user=head_office_clerk,
            data=self.issue_data(branch="IT Branch"),
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["issue"]["location"], "Colombo Head Office - IT Branch")

    def test_branch_is_ignored_outside_head_office(self):
        response = self.post_json(
            reverse("issues:issue_list"),
            user=self.clerk,
            data=self.issue_data(branch="Somewhere"),
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["issue"]["branch"], "")

    def test_only_subject_clerk_submits(self):
        response = self.post_json(reverse("issues:issue_list"), user=self.dc, data=self.issue_data())

        self.assertEqual(response.status_code, 403)
        self.assertFalse(Issue.objects.exists())

    def test_invalid_attachment_is_rejected(self):
        upload = SimpleUploadedFile("script.exe", b"MZ", content_type="application/octet-stream")

        response = self.client.post(
            reverse("issues:issue_list"),
            data=self.issue_data(attachment=upload),
            **self.auth(self.clerk),
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("Only JPG, JPEG, PNG, and PDF files are allowed.", response.json()["message"])
        self.assertFalse(Issue.objects.exists())

    def test_missing_fields_are_reported(self):
        response = self.post_json(reverse("issues:issue_list"), user=self.clerk, data={"deviceId": "X"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("description", response.json()["errors"])

    def test_malformed_json_is_rejected(self):
        response = self.client.post(
            reverse("issues:issue_list"),
            data="{not json",
            content_type="application/json",
            **self.auth(self.clerk),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Malformed JSON body.")


class IssueVisibilityTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.colombo_issue = self.create_issue()
        self.kandy_issue = self.create_issue(submitter=self.other_clerk, device_id="PC-KANDY")
        self.assigned_issue = self.create_issue(
            device_id="PC-ASSIGNED",
            status=Issue.Status.ASSIGNED,
            assigned_to=self.technician,
        )

    def listed_ids(self, user, **params):
        response = self.get_json(reverse("issues:issue_list"), user=user, data=params)
        self.assertEqual(response.status_code, 200)
        return {issue["id"] for issue in response.json()["issues"]}

    def test_list_requires_token(self):
        response = self.client.get(reverse("issues:issue_list"))

        self.assertEqual(response.status_code, 401)

    def test_district_roles_see_their_district(self):
        self.assertEqual(self.listed_ids(self.dc), {self.colombo_issue.pk, self.assigned_issue.pk})
        self.assertEqual(self.listed_ids(self.other_dc), {self.kandy_issue.pk})
        self.assertEqual(self.listed_ids(self.other_clerk), {self.kandy_issue.pk})

    def test_root_and_super_user_see_everything(self):
        everything = {self.colombo_issue.pk, self.kandy_issue.pk, self.assigned_issue.pk}
        self.assertEqual(self.listed_ids(self.root), everything)
        self.assertEqual(self.listed_ids(self.super_user), everything)

    def test_super_user_with_branch_is_narrowed(self):
        self.super_user.branch = "IT Branch"
        self.super_user.save()
        branch_issue = self.create_issue(
            submitter=self.create_user("hoclerk", "subject_clerk", district=self.head_office),
            branch="IT Branch",
        )

        self.assertEqual(self.listed_ids(self.super_user), {branch_issue.pk})

    def test_technician_sees_assigned_issues(self):
        self.assertEqual(self.listed_ids(self.technician), {self.assigned_issue.pk})
        self.assertEqual(self.listed_ids(self.other_technician), set())

    def test_invisible_issue_is_not_found(self):
        response = self.get_json(reverse("issues:issue_detail", args=[self.kandy_issue.pk]), user=self.dc)

        self.assertEqual(response.status_code, 404)

    def test_detail_for_visible_issue(self):
        response = self.get_json(reverse("issues:issue_detail", args=[self.assigned_issue.pk]), user=self.technician)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["assignedTo"]["username"], "technician")

    def test_my_issues_for_technician(self):
        response = self.get_json(reverse("issues:my_issues"), user=self.technician)

        self.assertEqual(response.status_code, 200)
        self.assertEqual([issue["id"] for issue in response.json()["issues"]], [self.assigned_issue.pk])
        self.assertEqual(self.get_json(reverse("issues:my_issues"), user=self.clerk).status_code, 403)


class IssueFilterTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.pending = self.create_issue(device_id="PRN-1", complaint_type=Issue.ComplaintType.OTHER)
        self.approved = self.create_issue(
            device_id="SRV-9",
            status=Issue.Status.DC_APPROVED,
            priority_level=Issue.Priority.LOW,
            description="Server fan is noisy.",
        )

    def listed_ids(self, **params):
        response = self.get_json(reverse("issues:issue_list"), user=self.root, data=params)
        return [issue["id"] for issue in response.json()["issues"]]

    def test_status_filter_accepts_legacy_spelling(self):
        self.assertEqual(self.listed_ids(status="DC Approved"), [self.approved.pk])
        self.assertEqual(self.listed_ids(status="Approved by DC/AC"), [self.approved.pk])
        self.assertEqual(self.listed_ids(status="No Such Status"), [])

    def test_type_priority_and_search_filters(self):
        self.assertEqual(self.listed_ids(complaintType=Issue.ComplaintType.OTHER), [self.pending.pk])
        self.assertEqual(self.listed_ids(priorityLevel=Issue.Priority.LOW), [self.approved.pk])
        self.assertEqual(self.listed_ids(q="fan"), [self.approved.pk])
        self.assertEqual(self.listed_ids(q="prn"), [self.pending.pk])

    def test_pagination_clamps_page(self):
        for index in range(3):
            self.create_issue(device_id=f"EXTRA-{index}")

        response = self.get_json(reverse("issues:issue_list"), user=self.root, data={"page": 99, "pageSize": 2})
        payload = response.json()
        self.assertEqual(payload["pagination"], {"page": 3, "pageSize": 2, "totalPages": 3, "totalItems": 5})
        self.assertEqual(len(payload["issues"]), 1)

        for page in ("abc", 0, -3):
            response = self.get_json(reverse("issues:issue_list"), user=self.root, data={"page": page, "pageSize": 2})
            self.assertEqual(response.json()["pagination"]["page"], 1)
            self.assertEqual(len(response.json()["issues"]), 2)

    def test_empty_list_has_one_page(self):
        response = self.get_json(
            reverse("issues:issue_list"),
            user=self.root,
            data={"page": 1, "status": Issue.Status.COMPLETED},
        )

        self.assertEqual(response.json()["pagination"]["totalPages"], 1)
        self.assertEqual(response.json()["issues"], [])

    def test_normalize_status(self):
        self.assertEqual(normalize_status("In_Progress"), Issue.Status.IN_PROGRESS)
        self.assertEqual(normalize_status(" Resolved "), Issue.Status.RESOLVED)
        self.assertEqual(normalize_status("Approved by Verifying Officer"), Issue.Status.DC_APPROVED)
        self.assertIsNone(normalize_status("Archived"))


class IssueEditDeleteTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.issue = self.create_issue(attachment=SimpleUploadedFile("old.pdf", b"%PDF-1.4 old"))

    def test_submitter_edits_pending_issue(self):
        response = self.put_json(
            reverse("issues:issue_detail", args=[self.issue.pk]),
            user=self.clerk,
            data={"description": "Still does not boot."},
        )

        self.assertEqual(response.status_code, 200)
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.description, "Still does not boot.")
        self.assertEqual(self.issue.device_id, "PC-0042")
        self.assertTrue(self.issue.attachment)
        self.assertTrue(self.issue.events.filter(action=IssueEvent.Action.EDITED).exists())

    def test_other_users_cannot_edit(self):
        colleague = self.create_user("colleague", "subject_clerk", district=self.colombo)

        response = self.put_json(
            reverse("issues:issue_detail", args=[self.issue.pk]),
            user=colleague,
            data={"description": "Hijacked"},
        )

        self.assertEqual(response.status_code, 403)

    def test_issue_cannot_be_edited_after_approval(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.DC_APPROVED)

        response = self.put_json(
            reverse("issues:issue_detail", args=[self.issue.pk]),
            user=self.clerk,
            data={"description": "Too late"},
        )

        self.assertEqual(response.status_code, 403)
        self.assertIn("Pending", response.json()["message"])

    def test_form_save_keeps_status_set_by_workflow(self):
        stale = Issue.objects.get(pk=self.issue.pk)
        apply_transition(self.issue, IssueEvent.Action.DC_APPROVE, self.dc)

        form = IssueForm(
            issue_form_data(stale, {"description": "Edited from an old copy"}),
            instance=stale,
            district=stale.district,
        )
        self.assertTrue(form.is_valid(), form.errors)
        form.save()

        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, Issue.Status.DC_APPROVED)
        self.assertEqual(self.issue.description, "Edited from an old copy")

    def test_submitter_deletes_pending_issue(self):
        response = self.delete_json(reverse("issues:issue_detail", args=[self.issue.pk]), user=self.clerk)

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Issue.objects.filter(pk=self.issue.pk).exists())

    def test_delete_after_approval_is_refused(self):
        Issue.objects.filter(pk=self.issue.pk).update(status=Issue.Status.DC_APPROVED)

        response = self.delete_json(reverse("issues:issue_detail", args=[self.issue.pk]), user=self.clerk)

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Issue.objects.filter(pk=self.issue.pk).exists())

    def test_attachment_download_follows_visibility(self):
        url = reverse("issues:issue_attachment", args=[self.issue.pk])

        response = self.get_json(url, user=self.dc, data={"inline": "1"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("inline", response["Content-Disposition"])

        self.assertEqual(self.get_json(url, user=self.other_dc).status_code, 404)

    def test_unsupported_method(self):
        response = self.client.patch(reverse("issues:issue_detail", args=[self.issue.pk]), **self.auth(self.clerk))

        self.assertEqual(response.status_code, 405)


class IssueSummaryTests(HelpdeskTestCase):
    def test_summary_groups(self):
        self.create_issue()
        self.create_issue(status=Issue.Status.REOPENED)
        self.create_issue(status=Issue.Status.IN_PROGRESS)
        self.create_issue(status=Issue.Status.COMPLETED)
        self.create_issue(status=Issue.Status.DC_REJECTED)
        self.create_issue(submitter=self.other_clerk)

        response = self.get_json(reverse("issues:issue_summary"), user=self.dc)

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total"], 5)
        self.assertEqual(payload["byStatus"][Issue.Status.PENDING], 1)
        self.assertEqual(payload["byStatus"][Issue.Status.UNDER_PROCUREMENT], 0)
        self.assertEqual(payload["pendingApproval"], 2)
        self.assertEqual(payload["active"], 1)
        self.assertEqual(payload["completed"], 1)
        self.assertEqual(payload["rejected"], 1)


class TechnicalOfficerListTests(HelpdeskTestCase):
    def test_super_user_lists_technical_officers(self):
        self.create_issue(status=Issue.Status.IN_PROGRESS, assigned_to=self.technician)

        response = self.get_json(reverse("issues:technical_officers"), user=self.super_user)

        self.assertEqual(response.status_code, 200)
        officers = {officer["username"]: officer for officer in response.json()}
        self.assertEqual(set(officers), {"technician", "othertech"})
        self.assertEqual(officers["technician"]["activeIssues"], 1)
        self.assertEqual(officers["othertech"]["activeIssues"], 0)

    def test_alias_and_role_check(self):
        self.assertEqual(self.get_json(reverse("issues:technical_officers_all"), user=self.root).status_code, 200)
        self.assertEqual(self.get_json(reverse("issues:technical_officers"), user=self.clerk).status_code, 403)
