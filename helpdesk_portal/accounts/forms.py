import re

from django import forms
from django.contrib.auth import password_validation
from django.core.exceptions import ValidationError
from django.utils import timezone

from helpdesk.validators import validate_attachment

from .models import District, Role, Skill, User

NIC_PATTERN = re.compile(r"^(\d{12}|\d{9}[vVxX])$")


def clean_nic_value(value):
    value = (value or "").strip()
    if value and not NIC_PATTERN.match(value):
        raise ValidationError("Please enter a valid NIC.")
    return value.upper() or None


class RegistrationForm(forms.ModelForm):
    password = forms.CharField(strip=False)
    role = forms.CharField()
    district_id = forms.ModelChoiceField(queryset=District.objects.all(), required=False)
    skill_id = forms.CharField(required=False)
    document = forms.FileField(required=False)

    class Meta:
        model = User
        fields = ("username", "email", "nic", "emp_id", "branch", "description")

    def clean_email(self):
        email = self.cleaned_data["email"].lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("User already exists")
        return email

    def clean_nic(self):
        return clean_nic_value(self.cleaned_data.get("nic"))

    def clean_emp_id(self):
        return (self.cleaned_data.get("emp_id") or "").strip() or None

    def clean_role(self):
        name = self.cleaned_data["role"].strip()
        if name == Role.ROOT:
            raise ValidationError("The root role cannot be requested.")
        role = Role.objects.filter(name=name).first()
        if role is None:
            raise ValidationError(f"Unknown role: {name}")
        return role

    def clean_skill_id(self):
        # Technical officers may send a comma separated list; the first known skill wins.
        raw = str(self.cleaned_data.get("skill_id") or "")
        ids = [int(part) for part in raw.split(",") if part.strip().isdigit()]
        return Skill.objects.filter(pk__in=ids).order_by("pk").first() if ids else None

    def clean_document(self):
        document = self.cleaned_data.get("document")
        if document:
            validate_attachment(document)
        return document

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get("password")
        if password:
            candidate = User(username=cleaned_data.get("username", ""), email=cleaned_data.get("email", ""))
            try:
                password_validation.validate_password(password, candidate)
            except ValidationError as error:
                self.add_error("password", error)
        return cleaned_data

    def save(self, commit=True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data["password"])
        user.role = self.cleaned_data["role"]
        user.district = self.cleaned_data.get("district_id")
        user.skill = self.cleaned_data.get("skill_id")
        user.attachment = self.cleaned_data.get("document")
        user.registration_status = User.RegistrationStatus.PENDING
        if commit:
            user.save()
        return user


class LoginForm(forms.Form):
    nic = forms.CharField(required=False)
    email = forms.EmailField(required=False)
    password = forms.CharField(strip=False)

    def clean(self):
        cleaned_data = super().clean()
        if not cleaned_data.get("nic") and not cleaned_data.get("email"):
            raise ValidationError("NIC or email is required.")
        return cleaned_data

    def get_user(self):
        nic = self.cleaned_data.get("nic")
        if nic:
            return User.objects.select_related("role").filter(nic=nic.strip().upper()).first()
        return User.objects.select_related("role").filter(email__iexact=self.cleaned_data["email"]).first()


class ForgotPasswordForm(LoginForm):
    password = None


class ResetPasswordForm(forms.Form):
    password = forms.CharField(strip=False)

    def __init__(self, *args, token=None, **kwargs):
        self.token = token
        self.user = None
        super().__init__(*args, **kwargs)

    def clean(self):
        cleaned_data = super().clean()
        if self.token:
            self.user = User.objects.filter(reset_token=self.token, reset_token_expiry__gt=timezone.now()).first()
        if self.user is None:
            raise ValidationError("Invalid or expired token")
        password = cleaned_data.get("password")
        if password:
            try:
                password_validation.validate_password(password, self.user)
            except ValidationError as error:
                self.add_error("password", error)
        return cleaned_data

    def save(self):
        self.user.set_password(self.cleaned_data["password"])
        self.user.reset_token = None
        self.user.reset_token_expiry = None
        self.user.save(update_fields=["password", "reset_token", "reset_token_expiry"])
        return self.user


class RejectUserForm(forms.Form):
    rejection_reason = forms.CharField(error_messages={"required": "Rejection reason is required."})


class RoleForm(forms.ModelForm):
    class Meta:
        model = Role
        fields = ["name"]
        error_messages = {"name": {"unique": "Role already exists"}}

    def clean_name(self):
        return self.cleaned_data["name"].strip().lower()
