from django.contrib.auth.models import Group, Permission
from django.core.management.base import BaseCommand, CommandError

from core.roles import ROLE_PERMISSIONS


class Command(BaseCommand):
    help = "Ensure every role group exists with its permission set (idempotent)."

    def handle(self, *args, **opts):
        for role, perms in ROLE_PERMISSIONS.items():
            group, created = Group.objects.get_or_create(name=role)
            wanted = []
            for perm in perms:
                app_label, codename = perm.split('.', 1)
                try:
                    wanted.append(Permission.objects.get(content_type__app_label=app_label, codename=codename))
                except Permission.DoesNotExist:
                    raise CommandError(f"unknown permission {perm}; run migrate first")
            group.permissions.set(wanted)
            self.stdout.write(self.style.SUCCESS(f"ok: {role} ({len(wanted)} permissions{', created' if created else ''})"))
        self.stdout.write(self.style.SUCCESS("All roles ensured."))
