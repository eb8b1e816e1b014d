"""
Tests for grc_access.permissions.models - PermissionSet validation and merge.
"""

import pytest

from grc_access.permissions.models import PermissionSet


class TestFromRaw:
    def test_none_and_empty_are_empty(self):
        assert PermissionSet.from_raw(None).is_empty()
        assert PermissionSet.from_raw("").is_empty()

    def test_json_text_is_parsed(self):
        perms = PermissionSet.from_raw('{"risks": {"read": true}}')
        assert perms.grants_action("risks", "read")

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2]",
            {"risks": ["read"]},
            {"risks": {"read": "yes"}},
            {"": {"read": True}},
            {"risks": {"": True}},
        ],
    )
    def test_malformed_blobs_are_rejected(self, raw):
        with pytest.raises(ValueError):
            PermissionSet.from_raw(raw)

    def test_result_is_read_only(self):
        perms = PermissionSet.from_raw({"risks": {"read": True}})
        with pytest.raises(TypeError):
            perms.grants["risks"] = {}


class TestMerge:
    def test_disjoint_sets_union(self):
        a = PermissionSet({"risks": {"read": True}})
        b = PermissionSet({"incidents": {"write": True}})
        merged = a.merge(b)
        assert merged.to_dict() == {
            "incidents": {"write": True},
            "risks": {"read": True},
        }

    def test_same_resource_merges_per_action(self):
        a = PermissionSet({"risks": {"read": True, "write": True}})
        b = PermissionSet({"risks": {"approve": True}})
        merged = a.merge(b)
        assert merged.to_dict() == {
            "risks": {"read": True, "write": True, "approve": True}
        }

    def test_override_wins_per_action(self):
        base = PermissionSet({"risks": {"write": True, "read": True}})
        override = PermissionSet({"risks": {"write": False}})
        merged = base.merge(override)
        assert merged.grants_action("risks", "read")
        assert not merged.grants_action("risks", "write")

    def test_merge_leaves_operands_untouched(self):
        a = PermissionSet({"risks": {"read": True}})
        a.merge(PermissionSet({"risks": {"read": False}}))
        assert a.grants_action("risks", "read")


class TestGrantChecks:
    def test_exact_grant(self):
        assert PermissionSet({"risks": {"read": True}}).grants_action("risks", "read")

    def test_resource_all_is_not_an_exact_grant(self):
        perms = PermissionSet({"risks": {"all": True}})
        assert perms.grants_all_on("risks")
        assert not perms.grants_action("risks", "delete")

    def test_super_admin(self):
        perms = PermissionSet({"admin": {"all": True}})
        assert perms.is_super_admin
        assert not perms.grants_all_on("risks")

    def test_absent_resource_denies(self):
        perms = PermissionSet({"risks": {"read": True}})
        assert not perms.grants_action("assets", "read")
        assert not perms.grants_all_on("assets")

    def test_false_entry_is_not_a_grant(self):
        assert not PermissionSet({"risks": {"read": False}}).grants_action("risks", "read")
