"""Report aggregation for the report generator.

Each report is a list of ``{"key", "label", "value"}`` items (plus a
``breakdown`` mapping for the grouped reports) sorted by ``value``
descending. Only issues submitted inside the inclusive date range count.
"""

from collections import OrderedDict

from django.db.models import Count

from .models import Issue

BY_STATUS = "by_status"
BY_DISTRICT = "by_district"
BY_ISSUE_TYPE = "by_issue_type"

REPORT_TYPES = (BY_STATUS, BY_DISTRICT, BY_ISSUE_TYPE)


def issues_in_range(start_date, end_date):
    return Issue.objects.filter(submitted_at__date__gte=start_date, submitted_at__date__lte=end_date)


def _sorted(items):
    return sorted(items, key=lambda item: (-item["value"], item["label"]))


def report_by_status(queryset):
    rows = queryset.values("status").annotate(count=Count("id")).order_by()
    return _sorted({"key": row["status"], "label": row["status"], "value": row["count"]} for row in rows)


def _grouped(rows, group_field, breakdown_field):
    groups = OrderedDict()
    for row in rows:
        key = row[group_field]
        if not key:
            continue
        key = key.strip()
        group = groups.setdefault(key, {"key": key, "label": key, "value": 0, "breakdown": {}})
        group["breakdown"][row[breakdown_field]] = group["breakdown"].get(row[breakdown_field], 0) + row["count"]
        group["value"] += row["count"]
    return _sorted(group for group in groups.values() if group["value"] > 0)


def report_by_district(queryset):
    rows = (
        queryset.filter(district__isnull=False)
        .values("district__name", "complaint_type")
        .annotate(count=Count("id"))
        .order_by()
    )
    return _grouped(rows, "district__name", "complaint_type")


def report_by_issue_type(queryset):
    rows = queryset.values("complaint_type", "status").annotate(count=Count("id")).order_by()
    return _grouped(rows, "complaint_type", "status")


REPORT_BUILDERS = {
    BY_STATUS: report_by_status,
    BY_DISTRICT: report_by_district,
    BY_ISSUE_TYPE: report_by_issue_type,
}


def build_report(report_type, start_date, end_date):
    return REPORT_BUILDERS[report_type](issues_in_range(start_date, end_date))
