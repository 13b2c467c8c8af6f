# accounts/authz.py
"""
Authorization utilities.

Provides:
- ActorContext: immutable context for the current request
- resolve_actor: build the actor context from a DRF request
- require: check a permission code and raise if not granted

Permissions are checked:
1. by role first (OWNER: implicit allow)
2. ADMIN/USER/VIEWER: explicit permission codes only (role defaults + grants)
"""

from dataclasses import dataclass
from typing import FrozenSet

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import CompanyMembership, Company


@dataclass(frozen=True)
class ActorContext:
    """
    Who is performing an action, and in which company.

    Passed to every command and policy. Commands only ever read or write
    rows whose company is actor.company.
    """
    user: object  # User model
    company: Company
    membership: CompanyMembership
    perms: FrozenSet[str]

    def has(self, code: str) -> bool:
        if not self.membership.is_active:
            return False
        if self.membership.role == CompanyMembership.Role.OWNER:
            return True
        if code in self.perms:
            return True
        # Permissions may have changed after the context was built.
        return self.membership.permissions.filter(code=code).exists()

    @property
    def user_id(self):
        return getattr(self.user, "id", None)

    @property
    def is_owner(self) -> bool:
        return self.membership.role == CompanyMembership.Role.OWNER

    @property
    def role(self) -> str:
        return self.membership.role


def build_actor(user, company) -> ActorContext:
    """
    Build an ActorContext for a user inside a company.

    Raises PermissionDenied if the user has no active membership there.
    """
    try:
        membership = CompanyMembership.objects.select_related(
            "company"
        ).prefetch_related(
            "permissions"
        ).get(
            user=user,
            company=company,
            is_active=True,
        )
    except CompanyMembership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected company.")

    perms = frozenset(membership.permissions.values_list("code", flat=True))
    return ActorContext(
        user=user,
        company=company,
        membership=membership,
        perms=perms,
    )


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    Membership and permissions are loaded fresh on every request, so
    permission changes take effect immediately.

    Raises:
        NotAuthenticated: if the user is not authenticated
        PermissionDenied: if the user has no active company or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    company = getattr(user, "active_company", None)
    if not company:
        raise PermissionDenied("No active company selected. Please select a company first.")

    return build_actor(user, company)


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Example:
        require(actor, "documents.transfer")
        # If we get here, permission is granted
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")


def require_any(actor: ActorContext, *codes: str) -> None:
    """Require that the actor has at least one of the given permissions."""
    for code in codes:
        if actor.has(code):
            return

    raise PermissionDenied(f"Permission denied: requires one of {', '.join(codes)}")
