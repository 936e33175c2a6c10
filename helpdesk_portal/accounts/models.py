import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone

HEAD_OFFICE_DISTRICT = "Colombo Head Office"


class Role(models.Model):
    SUBJECT_CLERK = "subject_clerk"
    DC = "dc"
    SUPER_USER = "super_user"
    TECHNICAL_OFFICER = "technical_officer"
    ROOT = "root"

    BUILTIN = (SUBJECT_CLERK, DC, SUPER_USER, TECHNICAL_OFFICER, ROOT)

    name = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class District(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def is_head_office(self) -> bool:
        return self.name.strip() == HEAD_OFFICE_DISTRICT


class Skill(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    class RegistrationStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    email = models.EmailField(unique=True)
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name="users", null=True, blank=True)
    district = models.ForeignKey(
        District,
        on_delete=models.SET_NULL,
        related_name="users",
        null=True,
        blank=True,
    )
    skill = models.ForeignKey(Skill, on_delete=models.SET_NULL, related_name="users", null=True, blank=True)
    emp_id = models.CharField(max_length=32, unique=True, null=True, blank=True)
    nic = models.CharField(max_length=12, unique=True, null=True, blank=True)
    branch = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    attachment = models.FileField(upload_to="registrations/%Y/%m/%d/", null=True, blank=True)
    registration_status = models.CharField(
        max_length=20,
        choices=RegistrationStatus.choices,
        default=RegistrationStatus.PENDING,
    )
    rejection_reason = models.TextField(blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reset_token = models.CharField(max_length=64, null=True, blank=True)
    reset_token_expiry = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-date_joined"]

    @property
    def role_name(self) -> str:
        return self.role.name if self.role_id else ""

    @property
    def is_verified(self) -> bool:
        return self.registration_status == self.RegistrationStatus.APPROVED

    def has_role(self, *names) -> bool:
        return self.role_name in names

    def issue_reset_token(self) -> str:
        self.reset_token = secrets.token_hex(20)
        self.reset_token_expiry = timezone.now() + timedelta(minutes=settings.PASSWORD_RESET_TIMEOUT_MINUTES)
        self.save(update_fields=["reset_token", "reset_token_expiry"])
        return self.reset_token

    def approve(self):
        self.registration_status = self.RegistrationStatus.APPROVED
        self.rejection_reason = ""
        self.reviewed_at = timezone.now()
        self.save(update_fields=["registration_status", "rejection_reason", "reviewed_at"])

    def reject(self, reason: str):
        self.registration_status = self.RegistrationStatus.REJECTED
        self.rejection_reason = reason
        self.reviewed_at = timezone.now()
        self.save(update_fields=["registration_status", "rejection_reason", "reviewed_at"])
