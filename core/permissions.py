"""
Role and permission gates for the REST API.

A gate verifies that an authenticated principal is present and that it
holds at least one of a required set of grants.  How grants are looked
up is injected through ``settings.ACCESS_CONTROL`` so the gates never
depend on a particular permission library; the defaults read Django
auth groups (roles) and Django permissions.

Usage::

    @api_view(['POST'])
    @permission_classes([permission_required('core.validate_assessment')])
    def validate_assessment(request, pk): ...
"""
from __future__ import annotations

from typing import Iterable, Protocol

from django.conf import settings
from django.utils.module_loading import import_string
from rest_framework import exceptions
from rest_framework.permissions import BasePermission

from core.exceptions import AccessDenied


class GrantLookup(Protocol):
    def has_any_of(self, user, required: Iterable[str]) -> bool: ...

    def grants_of(self, user) -> set[str]: ...


class GroupRoleLookup:
    """Roles are the names of the user's Django auth groups."""

    def grants_of(self, user) -> set[str]:
        return set(user.groups.values_list('name', flat=True))

    def has_any_of(self, user, required: Iterable[str]) -> bool:
        return bool(self.grants_of(user) & set(required))


class DjangoPermissionLookup:
    """Permissions are Django ``app_label.codename`` strings."""

    def grants_of(self, user) -> set[str]:
        return set(user.get_all_permissions())

    def has_any_of(self, user, required: Iterable[str]) -> bool:
        return any(user.has_perm(perm) for perm in required)


def get_lookup(kind: str) -> GrantLookup:
    key = 'ROLE_LOOKUP' if kind == 'roles' else 'PERMISSION_LOOKUP'
    return import_string(settings.ACCESS_CONTROL[key])()


class GrantRequired(BasePermission):
    kind = 'roles'
    required: frozenset[str] = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        if not (user and user.is_authenticated):
            raise exceptions.NotAuthenticated()
        lookup = get_lookup(self.kind)
        if not lookup.has_any_of(user, self.required):
            raise AccessDenied(kind=self.kind, required=self.required, actual=lookup.grants_of(user))
        return True


class RoleRequired(GrantRequired):
    kind = 'roles'


class PermissionRequired(GrantRequired):
    kind = 'permissions'


def role_required(*roles: str) -> type[RoleRequired]:
    """Permission class allowing users holding any of ``roles``."""
    return type('RoleRequired', (RoleRequired,), {'required': frozenset(roles)})


def permission_required(*perms: str) -> type[PermissionRequired]:
    """Permission class allowing users holding any of ``perms``."""
    return type('PermissionRequired', (PermissionRequired,), {'required': frozenset(perms)})


def per_method(**gates: type[BasePermission]) -> type[BasePermission]:
    """Pick a gate by HTTP method, e.g. ``per_method(GET=..., POST=...)``."""

    class PerMethod(BasePermission):
        def has_permission(self, request, view) -> bool:  # type: ignore[override]
            gate = gates.get(request.method)
            if gate is None:
                raise exceptions.MethodNotAllowed(request.method)
            return gate().has_permission(request, view)

    return PerMethod
