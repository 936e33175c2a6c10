from datetime import timedelta

from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone

from helpdesk.testcases import PASSWORD, HelpdeskTestCase

from .models import Role, Skill, User
from .tokens import create_access_token, decode_access_token


class RegistrationTests(HelpdeskTestCase):
    def registration_data(self, **overrides):
        data = {
            "username": "newclerk",
            "email": "NewClerk@Example.com",
            "password": "ComplexPass123!",
            "role": Role.SUBJECT_CLERK,
            "nic": "199912345678",
            "empId": "EMP-100",
            "districtId": str(self.colombo.pk),
            "description": "Clerk at the Colombo office.",
        }
        data.update(overrides)
        return data

    def test_register_creates_pending_user_and_notifies_root(self):
        upload = SimpleUploadedFile("letter.pdf", b"%PDF-1.4 appointment", content_type="application/pdf")
        data = self.registration_data(document=upload)

        response = self.client.post(reverse("accounts:register"), data=data)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["message"], "Registration submitted for approval")
        user = User.objects.get(username="newclerk")
        self.assertEqual(user.email, "newclerk@example.com")
        self.assertEqual(user.registration_status, User.RegistrationStatus.PENDING)
        self.assertEqual(user.role.name, Role.SUBJECT_CLERK)
        self.assertEqual(user.district, self.colombo)
        self.assertEqual(user.emp_id, "EMP-100")
        self.assertTrue(user.attachment.name.endswith(".pdf"))
        self.assertTrue(user.check_password("ComplexPass123!"))
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("newclerk", mail.outbox[0].body)

    def test_register_technician_keeps_first_known_skill(self):
        networking = Skill.objects.create(name="Networking")
        hardware = Skill.objects.create(name="Hardware")
        data = self.registration_data(role=Role.TECHNICAL_OFFICER, skillId=f"{hardware.pk},{networking.pk}")

        response = self.client.post(reverse("accounts:register"), data=data)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(User.objects.get(username="newclerk").skill, networking)

    def test_register_rejects_root_role(self):
        response = self.client.post(reverse("accounts:register"), data=self.registration_data(role=Role.ROOT))

        self.assertEqual(response.status_code, 400)
        self.assertFalse(User.objects.filter(username="newclerk").exists())

    def test_register_rejects_duplicate_email(self):
        response = self.client.post(
            reverse("accounts:register"),
            data=self.registration_data(email="CLERK@example.com"),
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("User already exists", response.json()["message"])

    def test_register_rejects_invalid_nic_and_document(self):
        upload = SimpleUploadedFile("virus.exe", b"MZ", content_type="application/octet-stream")
        response = self.client.post(
            reverse("accounts:register"),
            data=self.registration_data(nic="12345", document=upload),
        )

        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("nic", errors)
        self.assertIn("document", errors)


class LoginTests(HelpdeskTestCase):
    def test_login_with_nic_returns_token(self):
        self.clerk.nic = "200012345678"
        self.clerk.save()

        response = self.post_json(reverse("accounts:login"), data={"nic": "200012345678", "password": PASSWORD})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["role"], Role.SUBJECT_CLERK)
        self.assertEqual(payload["username"], "clerk")
        claims = decode_access_token(payload["token"])
        self.assertEqual(claims["userId"], self.clerk.pk)
        self.assertEqual(claims["role"], Role.SUBJECT_CLERK)

    def test_login_with_email(self):
        response = self.post_json(reverse("accounts:login"), data={"email": "DC@example.com", "password": PASSWORD})

        self.assertEqual(response.status_code, 401)

        response = self.post_json(
            reverse("accounts:login"),
            data={"email": "DCOFFICER@example.com", "password": PASSWORD},
        )
        self.assertEqual(response.status_code, 200)

    def test_login_with_wrong_password(self):
        response = self.post_json(reverse("accounts:login"), data={"email": "clerk@example.com", "password": "nope"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid credentials")

    def test_login_of_pending_user_is_forbidden(self):
        self.create_user("waiting", Role.DC, registration_status=User.RegistrationStatus.PENDING)

        response = self.post_json(reverse("accounts:login"), data={"email": "waiting@example.com", "password": PASSWORD})

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "Account not verified yet")

    def test_login_requires_nic_or_email(self):
        response = self.post_json(reverse("accounts:login"), data={"password": PASSWORD})

        self.assertEqual(response.status_code, 400)


class TokenTests(HelpdeskTestCase):
    def test_profile_requires_token(self):
        response = self.client.get(reverse("accounts:user_profile"))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Unauthorized: No token provided")

    def test_profile_rejects_invalid_token(self):
        response = self.client.get(reverse("accounts:user_profile"), HTTP_AUTHORIZATION="Bearer not-a-token")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Unauthorized: Invalid token")

    def test_profile_rejects_expired_token(self):
        with override_settings(JWT_EXPIRE_HOURS=-1):
            token = create_access_token(self.clerk)

        response = self.client.get(reverse("accounts:user_profile"), HTTP_AUTHORIZATION=f"Bearer {token}")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Session expired. Please log in again.")

    def test_profile_returns_current_user(self):
        response = self.get_json(reverse("accounts:user_profile"), user=self.dc)

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["username"], "dcofficer")
        self.assertEqual(payload["role"], Role.DC)
        self.assertEqual(payload["district"], {"id": self.colombo.pk, "name": "Colombo"})
        self.assertTrue(payload["isVerified"])


class PasswordResetTests(HelpdeskTestCase):
    def test_forgot_password_for_unknown_user(self):
        response = self.post_json(reverse("accounts:forgot_password"), data={"email": "ghost@example.com"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "User not found")

    def test_reset_password_flow(self):
        response = self.post_json(reverse("accounts:forgot_password"), data={"email": "clerk@example.com"})
        self.assertEqual(response.status_code, 200)
        self.clerk.refresh_from_db()
        token = self.clerk.reset_token
        self.assertIsNotNone(token)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(f"/reset-password/{token}", mail.outbox[0].body)

        url = reverse("accounts:reset_password", args=[token])
        response = self.post_json(url, data={"password": "BrandNewPass456!"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Password updated successfully")
        self.clerk.refresh_from_db()
        self.assertTrue(self.clerk.check_password("BrandNewPass456!"))
        self.assertIsNone(self.clerk.reset_token)

        response = self.post_json(url, data={"password": "AnotherPass789!"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid or expired token", response.json()["message"])

    def test_reset_password_with_expired_token(self):
        token = self.clerk.issue_reset_token()
        User.objects.filter(pk=self.clerk.pk).update(reset_token_expiry=timezone.now() - timedelta(minutes=1))

        response = self.post_json(
            reverse("accounts:reset_password", args=[token]),
            data={"password": "BrandNewPass456!"},
        )

        self.assertEqual(response.status_code, 400)
        self.clerk.refresh_from_db()
        self.assertTrue(self.clerk.check_password(PASSWORD))


class RootAdministrationTests(HelpdeskTestCase):
    def setUp(self):
        super().setUp()
        self.applicant = self.create_user(
            "applicant",
            Role.SUBJECT_CLERK,
            district=self.colombo,
            registration_status=User.RegistrationStatus.PENDING,
        )

    def test_only_root_lists_users(self):
        response = self.get_json(reverse("accounts:root_users"), user=self.dc)

        self.assertEqual(response.status_code, 403)
        self.assertIn("root", response.json()["message"])

    def test_pending_users_are_paginated_and_clamped(self):
        for index in range(2):
            self.create_user(
                f"applicant{index}",
                Role.DC,
                registration_status=User.RegistrationStatus.PENDING,
            )

        response = self.get_json(reverse("accounts:root_pending_users"), user=self.root, data={"page": 9, "pageSize": 2})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload["users"]), 1)
        self.assertEqual(
            payload["pagination"],
            {"page": 2, "pageSize": 2, "totalPages": 2, "totalItems": 3},
        )

    def test_approve_user(self):
        response = self.post_json(reverse("accounts:root_approve_user", args=[self.applicant.pk]), user=self.root)

        self.assertEqual(response.status_code, 200)
        self.applicant.refresh_from_db()
        self.assertTrue(self.applicant.is_verified)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["applicant@example.com"])

    def test_reject_user_requires_reason(self):
        response = self.post_json(
            reverse("accounts:root_reject_user", args=[self.applicant.pk]),
            user=self.root,
            data={"rejectionReason": "   "},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("Rejection reason is required.", response.json()["message"])
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.registration_status, User.RegistrationStatus.PENDING)

    def test_reject_user(self):
        response = self.post_json(
            reverse("accounts:root_reject_user", args=[self.applicant.pk]),
            user=self.root,
            data={"rejectionReason": "Unknown employee number"},
        )

        self.assertEqual(response.status_code, 200)
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.registration_status, User.RegistrationStatus.REJECTED)
        self.assertEqual(self.applicant.rejection_reason, "Unknown employee number")
        self.assertIn("Unknown employee number", mail.outbox[0].body)

    def test_registration_document_download_is_root_only(self):
        self.applicant.attachment = SimpleUploadedFile("id.pdf", b"%PDF-1.4 id", content_type="application/pdf")
        self.applicant.save()
        url = reverse("accounts:root_user_document", args=[self.applicant.pk])

        self.assertEqual(self.get_json(url, user=self.dc).status_code, 403)
        response = self.get_json(url, user=self.root)
        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment;", response["Content-Disposition"])


class RoleTests(HelpdeskTestCase):
    def test_public_role_list_hides_root(self):
        response = self.client.get(reverse("accounts:roles"))

        names = [role["name"] for role in response.json()]
        self.assertNotIn(Role.ROOT, names)
        self.assertIn(Role.DC, names)

    def test_add_role(self):
        response = self.post_json(reverse("accounts:root_roles"), user=self.root, data={"name": " Auditor "})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["name"], "auditor")

        response = self.post_json(reverse("accounts:root_roles"), user=self.root, data={"name": "auditor"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Role already exists", response.json()["message"])

    def test_delete_role(self):
        role = Role.objects.create(name="auditor")

        response = self.delete_json(reverse("accounts:root_role_delete", args=[role.pk]), user=self.root)

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Role.objects.filter(pk=role.pk).exists())

    def test_delete_role_in_use_or_builtin(self):
        role = Role.objects.create(name="auditor")
        self.create_user("auditor1", role)

        response = self.delete_json(reverse("accounts:root_role_delete", args=[role.pk]), user=self.root)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot delete role in use by users")

        builtin = self.roles[Role.DC]
        response = self.delete_json(reverse("accounts:root_role_delete", args=[builtin.pk]), user=self.root)
        self.assertEqual(response.status_code, 400)


class ReferenceDataTests(HelpdeskTestCase):
    def test_district_list(self):
        response = self.client.get(reverse("accounts:districts"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([district["name"] for district in response.json()], ["Colombo", "Colombo Head Office", "Kandy"])

    def test_districts_by_ids(self):
        url = reverse("accounts:data_districts_by_ids")

        response = self.client.get(url, data={"ids": f"{self.kandy.pk},x"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["districts"], [{"id": self.kandy.pk, "name": "Kandy"}])

        self.assertEqual(self.client.get(url).json()["message"], "No district IDs provided")
        self.assertEqual(self.client.get(url, data={"ids": "a,b"}).json()["message"], "Invalid district IDs")
