"""
Tests for the canonical permission operations in shared/permissions/services.py
"""

import pytest
from pydantic import ValidationError

from sharedminds.shared.permissions.models import (
    NO_ACCESS,
    AccessLevel,
    DetailLevel,
    GrantWithDisplay,
    PermissionFlags,
    PermissionRole,
    PermissionSubjectType,
    ShareScope,
)
from sharedminds.shared.permissions.services import (
    cap_role_at_ceiling,
    compare_roles,
    flags_to_role_approx,
    has_access,
    max_role,
    merge_permission_flags,
    role_to_flags,
    summarize_effective_access,
)


class TestRoleToFlags:
    @pytest.mark.parametrize(
        "role,expected",
        [
            (PermissionRole.OWNER, (True, True, True, True)),
            (PermissionRole.EDITOR, (True, True, True, False)),
            (PermissionRole.COMMENTER, (True, True, False, False)),
            (PermissionRole.VIEWER, (True, False, False, False)),
        ],
    )
    def test_role_templates(self, role: PermissionRole, expected: tuple) -> None:
        flags = role_to_flags(role)
        assert (flags.can_view, flags.can_comment, flags.can_edit, flags.can_manage) == expected
        assert flags.detail_level == DetailLevel.DETAILED
        assert flags.scope == ShareScope.THIS_ONLY
        assert flags.is_inherited is False

    def test_detail_and_scope_are_attached(self) -> None:
        flags = role_to_flags(
            PermissionRole.VIEWER, DetailLevel.OVERVIEW, ShareScope.INCLUDE_CHILDREN
        )
        assert flags.detail_level == DetailLevel.OVERVIEW
        assert flags.scope == ShareScope.INCLUDE_CHILDREN

    def test_accepts_role_string(self) -> None:
        assert role_to_flags("editor") == role_to_flags(PermissionRole.EDITOR)  # type: ignore[arg-type]

    @pytest.mark.parametrize("role", list(PermissionRole))
    def test_round_trip_through_role(self, role: PermissionRole) -> None:
        assert flags_to_role_approx(role_to_flags(role)) == role


class TestFlagsToRoleApprox:
    def test_edit_without_comment_is_still_editor(self) -> None:
        flags = PermissionFlags(can_view=True, can_edit=True, can_comment=False)
        assert flags_to_role_approx(flags) == PermissionRole.EDITOR

    def test_no_access_reads_as_viewer(self) -> None:
        assert flags_to_role_approx(NO_ACCESS) == PermissionRole.VIEWER

    def test_manage_wins(self) -> None:
        assert flags_to_role_approx(PermissionFlags(can_manage=True)) == PermissionRole.OWNER


class TestMergePermissionFlags:
    def test_booleans_are_anded(self) -> None:
        parent = role_to_flags(PermissionRole.EDITOR)
        child = role_to_flags(PermissionRole.OWNER)
        merged = merge_permission_flags(parent, child)
        assert merged.can_edit is True
        assert merged.can_manage is False

    def test_never_widens_any_flag(self) -> None:
        roles = list(PermissionRole)
        for parent_role in roles:
            for child_role in roles:
                parent = role_to_flags(parent_role)
                child = role_to_flags(child_role)
                merged = merge_permission_flags(parent, child)
                for field in ("can_view", "can_comment", "can_edit", "can_manage"):
                    assert getattr(merged, field) <= getattr(parent, field)
                    assert getattr(merged, field) <= getattr(child, field)

    def test_overview_and_this_only_win(self) -> None:
        parent = role_to_flags(
            PermissionRole.OWNER, DetailLevel.OVERVIEW, ShareScope.INCLUDE_CHILDREN
        )
        child = role_to_flags(
            PermissionRole.OWNER, DetailLevel.DETAILED, ShareScope.THIS_ONLY
        )
        merged = merge_permission_flags(parent, child)
        assert merged.detail_level == DetailLevel.OVERVIEW
        assert merged.scope == ShareScope.THIS_ONLY

    def test_include_children_kept_when_both_include(self) -> None:
        parent = role_to_flags(PermissionRole.VIEWER, scope=ShareScope.INCLUDE_CHILDREN)
        child = role_to_flags(PermissionRole.VIEWER, scope=ShareScope.INCLUDE_CHILDREN)
        assert merge_permission_flags(parent, child).scope == ShareScope.INCLUDE_CHILDREN

    def test_marks_inherited_with_parent_source(self) -> None:
        parent = PermissionFlags(can_view=True, source_context_id="ctx-parent")
        child = PermissionFlags(can_view=True, source_context_id="ctx-child")
        merged = merge_permission_flags(parent, child)
        assert merged.is_inherited is True
        assert merged.source_context_id == "ctx-parent"


class TestHasAccess:
    def test_none_flags_deny_everything(self) -> None:
        for access in AccessLevel:
            assert has_access(None, access) is False

    def test_checks_matching_flag(self) -> None:
        flags = role_to_flags(PermissionRole.COMMENTER)
        assert has_access(flags, AccessLevel.VIEW)
        assert has_access(flags, AccessLevel.COMMENT)
        assert not has_access(flags, AccessLevel.EDIT)
        assert not has_access(flags, "manage")  # type: ignore[arg-type]

    def test_flags_are_immutable(self) -> None:
        flags = role_to_flags(PermissionRole.VIEWER)
        with pytest.raises(ValidationError):
            flags.can_edit = True  # type: ignore[misc]


class TestRoleHelpers:
    def test_compare_roles(self) -> None:
        assert compare_roles(PermissionRole.OWNER, PermissionRole.VIEWER) > 0
        assert compare_roles(PermissionRole.VIEWER, PermissionRole.EDITOR) < 0
        assert compare_roles(PermissionRole.EDITOR, PermissionRole.EDITOR) == 0

    def test_max_role_ignores_none(self) -> None:
        assert max_role(None, PermissionRole.VIEWER, PermissionRole.EDITOR) == PermissionRole.EDITOR
        assert max_role(None, None) is None

    def test_cap_role_at_ceiling(self) -> None:
        assert cap_role_at_ceiling(PermissionRole.OWNER, PermissionRole.EDITOR) == PermissionRole.EDITOR
        assert cap_role_at_ceiling(PermissionRole.VIEWER, PermissionRole.EDITOR) == PermissionRole.VIEWER


def test_summarize_effective_access() -> None:
    def grant(role: PermissionRole) -> GrantWithDisplay:
        return GrantWithDisplay(
            subject_type=PermissionSubjectType.USER,
            subject_id=role.value,
            flags=role_to_flags(role),
            role=role,
            display_name=role.value,
        )

    summary = summarize_effective_access(
        [grant(PermissionRole.VIEWER), grant(PermissionRole.EDITOR), grant(PermissionRole.OWNER)]
    )
    assert summary.total == 3
    assert summary.can_view == 3
    assert summary.can_edit == 2
    assert summary.can_manage == 1
