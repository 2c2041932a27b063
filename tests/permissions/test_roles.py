"""Tests for permission inference."""

from itertools import combinations

import pytest

from stratus.errors import InvalidBindingError, UnknownOperationError
from stratus.permissions.roles import Role, infer_role
from stratus.resources.table import TableOperation

TABLE_OPERATIONS = [operation.value for operation in TableOperation]


class TestInferRole:
    """Tests for infer_role."""

    @pytest.mark.parametrize("operations", [["get"], ["tryGet"], ["list"], ["get", "list", "tryGet"]])
    def test_reads_infer_read(self, operations):
        """Read-only sets infer READ."""
        assert infer_role(operations) is Role.READ

    def test_insert_alone_is_read(self):
        """Only delete, update and upsert require READWRITE."""
        assert infer_role(["insert"]) is Role.READ

    @pytest.mark.parametrize("operation", ["delete", "update", "upsert"])
    def test_writes_infer_readwrite(self, operation):
        """Any mutating operation infers READWRITE."""
        assert infer_role(["get", operation]) is Role.READWRITE

    def test_enum_members(self):
        """Enum members are accepted."""
        assert infer_role([TableOperation.UPDATE]) is Role.READWRITE

    def test_function_invoke(self):
        """Invoking a function infers INVOKE."""
        assert infer_role(["invoke"], kind="function") is Role.INVOKE

    def test_monotonic(self):
        """Adding operations never lowers the inferred role."""
        for size in range(1, len(TABLE_OPERATIONS)):
            for subset in combinations(TABLE_OPERATIONS, size):
                role = infer_role(subset)
                for extra in TABLE_OPERATIONS:
                    assert infer_role(set(subset) | {extra}).covers(role)

    def test_unknown_operation(self):
        """Operations outside the vocabulary are rejected."""
        with pytest.raises(UnknownOperationError):
            infer_role(["get", "invoke"])

    def test_empty_set(self):
        """An empty set has no role."""
        with pytest.raises(InvalidBindingError):
            infer_role([])


class TestRole:
    """Tests for role ordering."""

    def test_readwrite_covers_read(self):
        assert Role.READWRITE.covers(Role.READ)
        assert not Role.READ.covers(Role.READWRITE)

    def test_invoke_is_its_own_family(self):
        """INVOKE neither covers nor is covered by data roles."""
        assert not Role.INVOKE.covers(Role.READ)
        assert not Role.READWRITE.covers(Role.INVOKE)
        assert Role.INVOKE.covers(Role.INVOKE)

    def test_ordering(self):
        assert Role.READ < Role.READWRITE
