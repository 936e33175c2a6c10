from datetime import date, datetime

from django.urls import reverse
from django.utils import timezone

from helpdesk.testcases import HelpdeskTestCase

from .models import Issue
from .reports import BY_DISTRICT, BY_ISSUE_TYPE, BY_STATUS, build_report


class ReportTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.create_dated_issue(date(2024, 3, 1), complaint_type=Issue.ComplaintType.COMPUTER_REPAIR)
        self.create_dated_issue(
            date(2024, 3, 2),
            complaint_type=Issue.ComplaintType.COMPUTER_REPAIR,
            status=Issue.Status.COMPLETED,
        )
        self.create_dated_issue(
            date(2024, 3, 3),
            complaint_type=Issue.ComplaintType.NETWORK_ISSUES,
            status=Issue.Status.COMPLETED,
        )
        self.create_dated_issue(
            date(2024, 3, 31),
            submitter=self.other_clerk,
            complaint_type=Issue.ComplaintType.NETWORK_ISSUES,
        )
        self.create_dated_issue(date(2024, 4, 1), complaint_type=Issue.ComplaintType.OTHER)

    def create_dated_issue(self, day, **kwargs):
        issue = self.create_issue(**kwargs)
        submitted_at = timezone.make_aware(datetime(day.year, day.month, day.day, 12, 0))
        Issue.objects.filter(pk=issue.pk).update(submitted_at=submitted_at)
        return issue

    def report(self, report_type, start=date(2024, 3, 1), end=date(2024, 3, 31)):
        return build_report(report_type, start, end)

    def test_by_status(self):
        self.assertEqual(
            self.report(BY_STATUS),
            [
                {"key": "Completed", "label": "Completed", "value": 2},
                {"key": "Pending", "label": "Pending", "value": 2},
            ],
        )

    def test_by_district_only_lists_districts_with_issues(self):
        self.assertEqual(
            self.report(BY_DISTRICT),
            [
                {
                    "key": "Colombo",
                    "label": "Colombo",
                    "value": 3,
                    "breakdown": {"Computer Repair": 2, "Network Issues": 1},
                },
                {
                    "key": "Kandy",
                    "label": "Kandy",
                    "value": 1,
                    "breakdown": {"Network Issues": 1},
                },
            ],
        )

    def test_by_issue_type(self):
        report = self.report(BY_ISSUE_TYPE)

        self.assertEqual([item["key"] for item in report], ["Computer Repair", "Network Issues"])
        self.assertEqual(report[0]["breakdown"], {"Pending": 1, "Completed": 1})
        self.assertEqual(report[1]["breakdown"], {"Completed": 1, "Pending": 1})

    def test_date_range_is_inclusive(self):
        report = self.report(BY_STATUS, start=date(2024, 3, 31), end=date(2024, 4, 1))

        self.assertEqual(sum(item["value"] for item in report), 2)

    def test_generate_endpoint(self):
        response = self.get_json(
            reverse("issues:report_generate"),
            user=self.super_user,
            data={"type": BY_STATUS, "startDate": "2024-03-01", "endDate": "2024-03-31"},
        )

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["type"], BY_STATUS)
        self.assertEqual(payload["startDate"], "2024-03-01")
        self.assertEqual(sum(item["value"] for item in payload["data"]), 4)

    def test_generate_validates_parameters(self):
        url = reverse("issues:report_generate")

        response = self.get_json(url, user=self.root, data={"type": BY_STATUS})
        self.assertEqual(response.status_code, 400)

        response = self.get_json(
            url,
            user=self.root,
            data={"type": "by_weather", "startDate": "2024-03-01", "endDate": "2024-03-31"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid report type", response.json()["message"])

        response = self.get_json(
            url,
            user=self.root,
            data={"type": BY_STATUS, "startDate": "01/03/2024", "endDate": "2024-03-31"},
        )
        self.assertEqual(response.status_code, 400)

    def test_generate_requires_reporting_role(self):
        response = self.get_json(
            reverse("issues:report_generate"),
            user=self.clerk,
            data={"type": BY_STATUS, "startDate": "2024-03-01", "endDate": "2024-03-31"},
        )

        self.assertEqual(response.status_code, 403)
