from pathlib import Path

from django.core.exceptions import ValidationError

ALLOWED_ATTACHMENT_EXTENSIONS = {".jpg", ".jpeg", ".png", ".pdf"}
MAX_ATTACHMENT_SIZE_BYTES = 5 * 1024 * 1024


def validate_attachment(file_obj):
    extension = Path(file_obj.name).suffix.lower()
    if extension not in ALLOWED_ATTACHMENT_EXTENSIONS:
        raise ValidationError("Only JPG, JPEG, PNG, and PDF files are allowed.")
    if file_obj.size > MAX_ATTACHMENT_SIZE_BYTES:
        raise ValidationError("Each file must be 5MB or smaller.")
