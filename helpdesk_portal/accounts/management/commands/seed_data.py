from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from accounts.models import HEAD_OFFICE_DISTRICT, District, Role, Skill, User

DISTRICTS = [
    "Colombo",
    "Gampaha",
    "Kalutara",
    "Kandy",
    "Matale",
    "Nuwara Eliya",
    "Galle",
    "Matara",
    "Hambantota",
    "Jaffna",
    "Kilinochchi",
    "Mannar",
    "Vavuniya",
    "Mullaitivu",
    "Batticaloa",
    "Ampara",
    "Trincomalee",
    "Kurunegala",
    "Puttalam",
    "Anuradhapura",
    "Polonnaruwa",
    "Badulla",
    "Moneragala",
    "Ratnapura",
    "Kegalle",
    HEAD_OFFICE_DISTRICT,
]

SKILLS = [
    "Administration",
    "Cybersecurity",
    "Hardware Knowledge",
    "Networking & Infrastructure",
    "Operating Systems",
    "Software Support",
    "System Administration",
]


class Command(BaseCommand):
    help = "Seed the database with districts, skills, the built-in roles and the root account."

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-root",
            action="store_true",
            help="Only seed reference data; do not create the root account.",
        )

    def handle(self, *args, **options):
        created_districts = sum(District.objects.get_or_create(name=name)[1] for name in DISTRICTS)
        created_skills = sum(Skill.objects.get_or_create(name=name)[1] for name in SKILLS)
        created_roles = sum(Role.objects.get_or_create(name=name)[1] for name in Role.BUILTIN)

        self.stdout.write(self.style.SUCCESS("Reference data seeded."))
        self.stdout.write(
            f"New districts: {created_districts}, new skills: {created_skills}, new roles: {created_roles}"
        )

        if options["skip_root"]:
            return

        if not settings.ROOT_PASSWORD:
            raise CommandError("Set ROOT_PASSWORD to create the root account.")

        root_user, created_root = User.objects.get_or_create(
            username=settings.ROOT_USERNAME,
            defaults={
                "email": settings.ROOT_EMAIL,
                "role": Role.objects.get(name=Role.ROOT),
                "district": District.objects.get(name=HEAD_OFFICE_DISTRICT),
                "registration_status": User.RegistrationStatus.APPROVED,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created_root:
            root_user.set_password(settings.ROOT_PASSWORD)
            root_user.save()
            self.stdout.write(self.style.SUCCESS(f"Root account '{root_user.username}' created."))
        else:
            self.stdout.write(self.style.WARNING(f"Root account '{root_user.username}' already exists."))
