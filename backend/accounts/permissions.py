# accounts/permissions.py
from __future__ import annotations

from typing import Optional

from django.conf import settings
from django.db import transaction

from accounts.models import AccessPermission, CompanyMembership, CompanyMembershipPermission
from accounts.permission_defaults import ROLE_DEFAULTS, all_permission_codes
from core.write_barrier import write_context_allowed


def _require_write_context() -> None:
    if getattr(settings, "TESTING", False):
        return
    if not write_context_allowed({"command", "bootstrap", "admin_emergency"}):
        raise RuntimeError(
            "Permission defaults can only be written within an allowed write context."
        )


def ensure_permission_rows(codes) -> list[AccessPermission]:
    """Create missing AccessPermission rows for the given codes."""
    codes = set(codes)
    existing = set(AccessPermission.objects.filter(code__in=codes).values_list("code", flat=True))
    missing = [c for c in codes if c not in existing]
    if missing:
        AccessPermission.objects.bulk_create(
            [
                AccessPermission(
                    code=c,
                    name=c,
                    module=c.split(".")[0],
                )
                for c in missing
            ],
            ignore_conflicts=True,
        )
    return list(AccessPermission.objects.filter(code__in=codes))


@transaction.atomic
def grant_role_defaults(
    membership: CompanyMembership,
    granted_by=None,
    overwrite: bool = False,
) -> int:
    """
    Grant default permissions for membership.role.

    - Idempotent by default: only grants missing codes.
    - If overwrite=True: first removes existing grants, then grants defaults.
    Returns the number of permissions newly granted.
    """
    default_codes = ROLE_DEFAULTS.get(membership.role, set())

    _require_write_context()

    if overwrite:
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            company=membership.company,
        ).delete()

    perms = ensure_permission_rows(default_codes)

    already = set(
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            company=membership.company,
            permission__in=perms,
        ).values_list("permission__code", flat=True)
    )

    to_grant = [p for p in perms if p.code not in already]
    if not to_grant:
        return 0

    CompanyMembershipPermission.objects.bulk_create(
        [
            CompanyMembershipPermission(
                membership=membership,
                company=membership.company,
                permission=p,
                granted_by=granted_by if (granted_by and granted_by.is_authenticated) else None,
            )
            for p in to_grant
        ],
        ignore_conflicts=True,
    )
    return len(to_grant)


@transaction.atomic
def seed_permissions() -> int:
    """Make sure every known permission code has a row. Returns the total."""
    _require_write_context()
    return len(ensure_permission_rows(all_permission_codes()))
