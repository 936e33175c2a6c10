import shutil
import tempfile

from django.test import TestCase, override_settings

from accounts.models import HEAD_OFFICE_DISTRICT, District, Role, User
from accounts.tokens import create_access_token
from issues.models import Issue

PASSWORD = "StrongPass123!"


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    PASSWORD_HASHERS=["django.contrib.auth.hashers.MD5PasswordHasher"],
)
class HelpdeskTestCase(TestCase):
    """Base case with one approved user per role and a temporary ``MEDIA_ROOT``."""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.media_override = override_settings(MEDIA_ROOT=self.media_root)
        self.media_override.enable()

        self.roles = {name: Role.objects.create(name=name) for name in Role.BUILTIN}
        self.colombo = District.objects.create(name="Colombo")
        self.kandy = District.objects.create(name="Kandy")
        self.head_office = District.objects.create(name=HEAD_OFFICE_DISTRICT)

        self.clerk = self.create_user("clerk", Role.SUBJECT_CLERK, district=self.colombo)
        self.other_clerk = self.create_user("kandyclerk", Role.SUBJECT_CLERK, district=self.kandy)
        self.dc = self.create_user("dcofficer", Role.DC, district=self.colombo)
        self.other_dc = self.create_user("kandydc", Role.DC, district=self.kandy)
        self.super_user = self.create_user("superuser", Role.SUPER_USER, district=self.head_office)
        self.technician = self.create_user("technician", Role.TECHNICAL_OFFICER)
        self.other_technician = self.create_user("othertech", Role.TECHNICAL_OFFICER)
        self.root = self.create_user("rootadmin", Role.ROOT, district=self.head_office)

    def tearDown(self):
        self.media_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def create_user(self, username, role, **kwargs):
        fields = {
            "email": f"{username}@example.com",
            "role": role if isinstance(role, Role) else self.roles[role],
            "registration_status": User.RegistrationStatus.APPROVED,
        }
        fields.update(kwargs)
        return User.objects.create_user(username=username, password=PASSWORD, **fields)

    def create_issue(self, submitter=None, **kwargs):
        submitter = submitter or self.clerk
        data = {
            "device_id": "PC-0042",
            "complaint_type": Issue.ComplaintType.COMPUTER_REPAIR,
            "description": "Machine does not boot after the power cut.",
            "priority_level": Issue.Priority.HIGH,
            "district": submitter.district,
            "submitter": submitter,
        }
        data.update(kwargs)
        return Issue.objects.create(**data)

    def auth(self, user):
        return {"HTTP_AUTHORIZATION": f"Bearer {create_access_token(user)}"}

    def get_json(self, url, user=None, data=None):
        extra = self.auth(user) if user else {}
        return self.client.get(url, data=data, **extra)

    def post_json(self, url, user=None, data=None):
        extra = self.auth(user) if user else {}
        return self.client.post(url, data=data or {}, content_type="application/json", **extra)

    def put_json(self, url, user=None, data=None):
        extra = self.auth(user) if user else {}
        return self.client.put(url, data=data or {}, content_type="application/json", **extra)

    def delete_json(self, url, user=None):
        extra = self.auth(user) if user else {}
        return self.client.delete(url, **extra)
