"""
Unit tests for per-list access tables.

Covers the static table of the built-in lists, the unconditional create
on ownable lists and its strict counterpart, and the validation applied
when an access table is built.
"""

import pytest

from shopkeeper.access import (ALLOW, DENY, NAMED_RULES, OWNABLE_ACCESS,
                               USER_ACCESS, AllowIf, FieldEquals, ListAccess,
                               Operation, Subject, is_administrator,
                               is_administrator_or_owner, resolve_rule)
from shopkeeper.exceptions import ListDefinitionError
from shopkeeper.schema import default_registry

OWNABLE_LISTS = ["Shop", "ShopItem", "Channel", "ChannelItem", "Match"]


@pytest.fixture
def registry():
    return default_registry()


@pytest.mark.unit
class TestUserTable:
    def test_create_allowed_for_anyone(self, owner_subject):
        assert USER_ACCESS.evaluate(Operation.CREATE, None) is ALLOW
        assert USER_ACCESS.evaluate(Operation.CREATE, owner_subject) is ALLOW

    @pytest.mark.parametrize("operation", [Operation.READ, Operation.UPDATE])
    def test_read_update_self_or_admin(self, operation, owner_subject, admin_subject):
        assert USER_ACCESS.evaluate(operation, admin_subject) is ALLOW
        assert USER_ACCESS.evaluate(operation, owner_subject) == AllowIf(FieldEquals("id", "u1"))
        assert USER_ACCESS.evaluate(operation, None) is DENY

    def test_delete_admin_only(self, owner_subject, admin_subject):
        assert USER_ACCESS.evaluate(Operation.DELETE, admin_subject) is ALLOW
        assert USER_ACCESS.evaluate(Operation.DELETE, owner_subject) is DENY
        assert USER_ACCESS.evaluate(Operation.DELETE, None) is DENY


@pytest.mark.unit
class TestOwnableTables:
    @pytest.mark.parametrize("list_key", OWNABLE_LISTS)
    def test_builtin_lists_use_ownable_table(self, registry, list_key):
        assert registry.get(list_key).access is OWNABLE_ACCESS

    @pytest.mark.parametrize("list_key", OWNABLE_LISTS)
    @pytest.mark.parametrize("operation", [Operation.READ, Operation.UPDATE, Operation.DELETE])
    def test_owner_filter(self, registry, list_key, operation, owner_subject, admin_subject):
        access = registry.get(list_key).access
        assert access.evaluate(operation, admin_subject) is ALLOW
        assert access.evaluate(operation, owner_subject) == AllowIf(FieldEquals("user", "u1"))
        assert access.evaluate(operation, None) is DENY

    @pytest.mark.parametrize("list_key", OWNABLE_LISTS)
    def test_create_is_unconditional(self, registry, list_key, owner_subject):
        """Create on ownable lists is Allow for every subject, including anonymous."""
        access = registry.get(list_key).access
        assert access.evaluate(Operation.CREATE, None) is ALLOW
        assert access.evaluate(Operation.CREATE, owner_subject) is ALLOW

    def test_strict_create_uses_owner_predicate(self, owner_subject, admin_subject):
        assert OWNABLE_ACCESS.evaluate(Operation.CREATE, None, strict=True) is DENY
        assert OWNABLE_ACCESS.evaluate(Operation.CREATE, admin_subject, strict=True) is ALLOW
        decision = OWNABLE_ACCESS.evaluate(Operation.CREATE, owner_subject, strict=True)
        assert decision == AllowIf(FieldEquals("user", "u1"))
        assert decision.permits({"name": "Mine", "user": "u1"})
        assert not decision.permits({"name": "Theirs", "user": "u2"})
        assert not decision.permits({"name": "Unowned"})

    def test_strict_without_intended_rule_keeps_create(self):
        assert USER_ACCESS.evaluate(Operation.CREATE, None, strict=True) is ALLOW

    def test_operation_accepts_strings(self, owner_subject):
        assert OWNABLE_ACCESS.evaluate("read", owner_subject) == OWNABLE_ACCESS.evaluate(
            Operation.READ, owner_subject
        )


@pytest.mark.unit
class TestScenarios:
    def test_owner_reads_own_shop(self, registry):
        subject = Subject(id="u1", is_admin=False)
        decision = registry.get("Shop").access.evaluate(Operation.READ, subject)
        assert decision.resolve({"id": "s1", "user": "u1"}) is ALLOW

    def test_owner_cannot_read_someone_elses_shop(self, registry):
        subject = Subject(id="u1", is_admin=False)
        decision = registry.get("Shop").access.evaluate(Operation.READ, subject)
        assert decision.resolve({"id": "s2", "user": "u2"}) is DENY

    def test_admin_deletes_any_shop(self, registry):
        subject = Subject(id="a1", is_admin=True)
        decision = registry.get("Shop").access.evaluate(Operation.DELETE, subject)
        assert decision is ALLOW
        assert decision.resolve({"id": "s2", "user": "u2"}) is ALLOW

    def test_anonymous_cannot_update_channel_items(self, registry):
        decision = registry.get("ChannelItem").access.evaluate(Operation.UPDATE, None)
        assert decision is DENY

    def test_repeated_evaluation_is_equal(self, registry, owner_subject):
        access = registry.get("Match").access
        for operation in Operation:
            assert access.evaluate(operation, owner_subject) == access.evaluate(
                operation, owner_subject
            )


@pytest.mark.unit
class TestTableValidation:
    def test_bare_boolean_slot_rejected(self):
        with pytest.raises(ListDefinitionError, match="bare boolean"):
            ListAccess(
                create=True,
                read=ALLOW,
                update=ALLOW,
                delete=ALLOW,
            )

    def test_non_callable_slot_rejected(self):
        with pytest.raises(ListDefinitionError, match="must be a Decision or a callable"):
            ListAccess(create=ALLOW, read="owner", update=ALLOW, delete=ALLOW)

    def test_from_mapping_resolves_names(self):
        access = ListAccess.from_mapping(
            {
                "create": "allow",
                "read": "is_administrator_or_owner",
                "update": "is_administrator_or_owner",
                "delete": "is_administrator",
            }
        )
        assert access.create is ALLOW
        assert access.read is is_administrator_or_owner
        assert access.delete is is_administrator

    def test_from_mapping_rejects_unknown_operation(self):
        with pytest.raises(ListDefinitionError, match="Unknown operation"):
            ListAccess.from_mapping(
                {"create": "allow", "read": "allow", "update": "allow",
                 "delete": "allow", "publish": "allow"}
            )

    def test_from_mapping_rejects_missing_operation(self):
        with pytest.raises(ListDefinitionError, match="missing operation"):
            ListAccess.from_mapping({"create": "allow", "read": "allow", "update": "allow"})

    def test_from_mapping_rejects_unknown_rule_name(self):
        with pytest.raises(ListDefinitionError, match="Unknown access rule"):
            ListAccess.from_mapping(
                {"create": "allow", "read": "nobody", "update": "allow", "delete": "allow"}
            )

    def test_from_mapping_rejects_booleans(self):
        with pytest.raises(ListDefinitionError):
            ListAccess.from_mapping(
                {"create": True, "read": "allow", "update": "allow", "delete": "allow"}
            )

    def test_named_rules_cover_predicates(self):
        assert set(NAMED_RULES) == {
            "allow",
            "deny",
            "is_administrator",
            "owns_resource",
            "is_self",
            "is_administrator_or_owner",
            "can_access_user_record",
        }


@pytest.mark.unit
class TestResolveRule:
    def test_fixed_decision(self, owner_subject):
        assert resolve_rule(DENY, owner_subject) is DENY

    def test_bool_result_is_lifted(self, admin_subject, owner_subject):
        assert resolve_rule(is_administrator, admin_subject) is ALLOW
        assert resolve_rule(is_administrator, owner_subject) is DENY

    def test_invalid_result_type(self, owner_subject):
        with pytest.raises(ListDefinitionError, match="expected Decision or bool"):
            resolve_rule(lambda subject: "yes", owner_subject)
