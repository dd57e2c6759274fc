from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from triage.models import User

DEMO_SET = [
    ("nurse1", "nurse", "A"),
    ("doctor1", "physician", "A"),
    ("doctor2", "physician", "B"),
    ("senior1", "senior_physician", "A"),
    ("charge1", "charge_nurse", "A"),
]


class Command(BaseCommand):
    help = "Ensure one demo user per role exists with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--password', default='Triage#2024')

    def handle(self, *args, **opts):
        password = make_password(opts['password'])
        for username, role, zone in DEMO_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "zone": zone, "password": password, "is_active": True, "on_duty": True},
            )
            if not created:
                u.password = password
                u.role = role
                u.zone = zone
                u.is_active = True
                u.save(update_fields=["password", "role", "zone", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role}, zone {zone})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
