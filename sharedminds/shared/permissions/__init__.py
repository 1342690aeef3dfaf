"""
Canonical permission vocabulary shared by every shareable entity type.

Usage:
    from sharedminds.shared.permissions import AccessLevel, has_access

    if not has_access(flags, AccessLevel.EDIT):
        raise NotAuthorizedError("Only editors can change this tracker")
"""

from .models import (
    NO_ACCESS,
    AccessLevel,
    DetailLevel,
    PermissionFlags,
    PermissionGrant,
    PermissionRole,
    PermissionSubjectType,
    ShareScope,
)
from .services import (
    flags_to_role_approx,
    has_access,
    merge_permission_flags,
    role_to_flags,
)

__all__ = [
    "NO_ACCESS",
    "AccessLevel",
    "DetailLevel",
    "PermissionFlags",
    "PermissionGrant",
    "PermissionRole",
    "PermissionSubjectType",
    "ShareScope",
    "flags_to_role_approx",
    "has_access",
    "merge_permission_flags",
    "role_to_flags",
]
