from typing import Iterable, Optional

from .models import (
    ROLE_FLAG_TEMPLATES,
    ROLE_HIERARCHY,
    AccessLevel,
    DetailLevel,
    EffectiveAccessSummary,
    GrantWithDisplay,
    PermissionFlags,
    PermissionRole,
    ShareScope,
)


def role_to_flags(
    role: PermissionRole,
    detail_level: DetailLevel = DetailLevel.DETAILED,
    scope: ShareScope = ShareScope.THIS_ONLY,
) -> PermissionFlags:
    """
    Expand a role into its canonical flag template.

    Args:
        role: The role to expand
        detail_level: Detail level to attach, detailed by default
        scope: Share scope to attach, this_only by default

    Returns:
        PermissionFlags for the role
    """
    return PermissionFlags(
        **ROLE_FLAG_TEMPLATES[PermissionRole(role)],
        detail_level=detail_level,
        scope=scope,
    )


def flags_to_role_approx(flags: PermissionFlags) -> PermissionRole:
    """
    Approximate the most privileged role whose minimum requirement is met.

    This is lossy: ``{can_edit: True, can_comment: False}`` still reads as
    editor. Do not round-trip arbitrary flags through a role.
    """
    if flags.can_manage:
        return PermissionRole.OWNER
    if flags.can_edit:
        return PermissionRole.EDITOR
    if flags.can_comment:
        return PermissionRole.COMMENTER
    return PermissionRole.VIEWER


def merge_permission_flags(
    parent: PermissionFlags, child: PermissionFlags
) -> PermissionFlags:
    """
    Compute effective flags for a child context inheriting from a parent.

    Capabilities only ever narrow: every boolean is ANDed, overview beats
    detailed, and this_only beats include_children.
    """
    detail_level = DetailLevel.DETAILED
    if DetailLevel.OVERVIEW in (parent.detail_level, child.detail_level):
        detail_level = DetailLevel.OVERVIEW

    scope = ShareScope.INCLUDE_CHILDREN
    if ShareScope.THIS_ONLY in (parent.scope, child.scope):
        scope = ShareScope.THIS_ONLY

    return PermissionFlags(
        can_view=parent.can_view and child.can_view,
        can_comment=parent.can_comment and child.can_comment,
        can_edit=parent.can_edit and child.can_edit,
        can_manage=parent.can_manage and child.can_manage,
        detail_level=detail_level,
        scope=scope,
        is_inherited=True,
        source_context_id=parent.source_context_id,
    )


def has_access(flags: Optional[PermissionFlags], access: AccessLevel) -> bool:
    """
    Check whether flags allow the requested access.

    Every entity-mutating operation calls this before proceeding.
    """
    if flags is None:
        return False
    return bool(getattr(flags, f"can_{AccessLevel(access).value}"))


def compare_roles(a: PermissionRole, b: PermissionRole) -> int:
    """Positive when ``a`` outranks ``b``, zero when equal."""
    return ROLE_HIERARCHY[PermissionRole(a)] - ROLE_HIERARCHY[PermissionRole(b)]


def max_role(*roles: Optional[PermissionRole]) -> Optional[PermissionRole]:
    present = [PermissionRole(r) for r in roles if r is not None]
    if not present:
        return None
    return max(present, key=lambda r: ROLE_HIERARCHY[r])


def cap_role_at_ceiling(
    role: PermissionRole, ceiling: PermissionRole
) -> PermissionRole:
    if compare_roles(role, ceiling) > 0:
        return PermissionRole(ceiling)
    return PermissionRole(role)


def summarize_effective_access(
    grants: Iterable[GrantWithDisplay],
) -> EffectiveAccessSummary:
    summary = EffectiveAccessSummary()
    for grant in grants:
        summary.total += 1
        summary.can_view += int(grant.flags.can_view)
        summary.can_edit += int(grant.flags.can_edit)
        summary.can_manage += int(grant.flags.can_manage)
    return summary
