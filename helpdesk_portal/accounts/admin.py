from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import District, Role, Skill, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = (
        "username",
        "email",
        "nic",
        "role",
        "district",
        "registration_status",
        "date_joined",
    )
    list_filter = ("registration_status", "role", "district", "is_active")
    search_fields = ("username", "email", "nic", "emp_id")
    readonly_fields = ("reviewed_at", "date_joined", "last_login")
    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Helpdesk",
            {
                "fields": (
                    "role",
                    "district",
                    "branch",
                    "skill",
                    "nic",
                    "emp_id",
                    "description",
                    "attachment",
                    "registration_status",
                    "rejection_reason",
                    "reviewed_at",
                )
            },
        ),
    )


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "created_at")
    search_fields = ("name",)


@admin.register(District)
class DistrictAdmin(admin.ModelAdmin):
    list_display = ("id", "name")
    search_fields = ("name",)


@admin.register(Skill)
class SkillAdmin(admin.ModelAdmin):
    list_display = ("id", "name")
    search_fields = ("name",)
