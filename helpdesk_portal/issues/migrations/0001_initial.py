# Generated manually for the initial helpdesk schema.

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Issue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("device_id", models.CharField(max_length=100)),
                (
                    "complaint_type",
                    models.CharField(
                        choices=[
                            ("Computer Repair", "Computer Repair"),
                            ("Virus Issue", "Virus Issue"),
                            ("Permissions", "Permissions"),
                            ("Network Issues", "Network Issues"),
                            ("Other", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                ("description", models.TextField()),
                (
                    "priority_level",
                    models.CharField(
                        choices=[("Low", "Low"), ("Medium", "Medium"), ("High", "High")],
                        default="Medium",
                        max_length=10,
                    ),
                ),
                ("branch", models.CharField(blank=True, max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Pending", "Pending"),
                            ("Approved by DC/AC", "Approved by DC/AC"),
                            ("Rejected by DC/AC", "Rejected by DC/AC"),
                            ("Approved by Super Admin", "Approved by Super Admin"),
                            ("Rejected by Super Admin", "Rejected by Super Admin"),
                            ("Assigned to Technician", "Assigned to Technician"),
                            ("In Progress", "In Progress"),
                            ("Under Procurement", "Under Procurement"),
                            ("Resolved", "Resolved"),
                            ("Completed", "Completed"),
                            ("Reopened", "Reopened"),
                            ("Add_To_Procurement", "Add To Procurement"),
                        ],
                        default="Pending",
                        max_length=30,
                    ),
                ),
                ("submitted_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("last_status_updated_at", models.DateTimeField(blank=True, null=True)),
                ("attachment", models.FileField(blank=True, null=True, upload_to="issue_attachments/%Y/%m/%d/")),
                ("under_warranty", models.BooleanField(default=False)),
                ("resolution_details", models.TextField(blank=True)),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_issues",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "district",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="issues",
                        to="accounts.district",
                    ),
                ),
                (
                    "submitter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="submitted_issues",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-submitted_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="IssueEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("submitted", "Submitted"),
                            ("edited", "Edited"),
                            ("dc_approve", "DC approve"),
                            ("dc_reject", "DC reject"),
                            ("root_approve", "Root approve"),
                            ("root_reject", "Root reject"),
                            ("assign", "Assign"),
                            ("procure", "Procure"),
                            ("start", "Start"),
                            ("resolve", "Resolve"),
                            ("request_procurement", "Request procurement"),
                            ("complete", "Complete"),
                            ("review_approve", "Review approve"),
                            ("review_reject", "Review reject"),
                            ("reopen", "Reopen"),
                        ],
                        max_length=30,
                    ),
                ),
                ("from_status", models.CharField(blank=True, max_length=30)),
                ("to_status", models.CharField(blank=True, max_length=30)),
                ("text", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="issue_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "issue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="issues.issue",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]
