from django.contrib import admin

from .models import Issue, IssueEvent


class IssueEventInline(admin.TabularInline):
    model = IssueEvent
    extra = 0
    readonly_fields = ("actor", "action", "from_status", "to_status", "text", "created_at")
    can_delete = False


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "device_id",
        "complaint_type",
        "priority_level",
        "status",
        "district",
        "submitter",
        "assigned_to",
        "submitted_at",
    )
    list_filter = ("status", "complaint_type", "priority_level", "district", "submitted_at")
    search_fields = ("device_id", "description", "submitter__username", "submitter__email")
    readonly_fields = ("status", "submitted_at", "updated_at", "last_status_updated_at")
    inlines = [IssueEventInline]


@admin.register(IssueEvent)
class IssueEventAdmin(admin.ModelAdmin):
    list_display = ("issue", "action", "from_status", "to_status", "actor", "created_at")
    list_filter = ("action", "created_at")
    search_fields = ("issue__device_id", "text", "actor__username")
    readonly_fields = ("issue", "actor", "action", "from_status", "to_status", "text", "created_at")
