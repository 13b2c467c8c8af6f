# accounts/management/commands/seed_permissions.py

from django.core.management.base import BaseCommand

from accounts.permissions import seed_permissions
from core.write_barrier import bootstrap_writes_allowed


class Command(BaseCommand):
    help = "Seed the default permission codes to the database"

    def handle(self, *args, **options):
        with bootstrap_writes_allowed():
            total = seed_permissions()

        self.stdout.write(self.style.SUCCESS(f"Done! {total} permission codes present."))
