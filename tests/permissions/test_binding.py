"""Tests for the binding protocol."""

import pytest

from stratus.core.kinds import ResourceKind
from stratus.core.node import ResourceGraph
from stratus.errors import (
    InvalidBindingError,
    InvalidResourceError,
    UnknownOperationError,
    UnsupportedBindingError,
)
from stratus.permissions.binding import BindingProtocol
from stratus.permissions.ledger import PermissionLedger
from stratus.permissions.roles import Role, infer_role


@pytest.fixture
def graph():
    graph = ResourceGraph()
    graph.define_resource("table", "Users", {"columns": {"name": "string"}})
    graph.define_resource("table", "Orders", {"columns": {"total": "number"}})
    graph.define_resource("function", "Handler", {"entrypoint": "handler.zip"})
    return graph


@pytest.fixture
def protocol(graph):
    return BindingProtocol(graph, PermissionLedger())


class TestBindingProtocol:
    """Tests for BindingProtocol.bind."""

    def test_bind_creates_grant(self, graph, protocol):
        users, handler = graph.get("Users"), graph.get("Handler")

        assert protocol.bind(handler, users, ["get"]) is None

        grants = protocol.ledger.grants()
        assert len(grants) == 1
        assert grants[0].producer is users
        assert grants[0].principal is handler
        assert grants[0].role is Role.READ

    def test_bind_single_operation(self, graph, protocol):
        """A single operation string binds that operation."""
        users, handler = graph.get("Users"), graph.get("Handler")

        protocol.bind(handler, users, "get")

        assert protocol.operations_for(handler, users) == {"get"}
        assert [grant.role for grant in protocol.ledger.grants()] == [Role.READ]

    def test_bind_single_unknown_operation(self, graph, protocol):
        """A single unknown operation is reported whole."""
        users, handler = graph.get("Users"), graph.get("Handler")

        with pytest.raises(UnknownOperationError) as exc_info:
            protocol.bind(handler, users, "gte")
        assert exc_info.value.operation == "gte"

    def test_read_then_write_leaves_single_readwrite(self, graph, protocol):
        """Binding {get} then {update} ends with one READWRITE grant."""
        users, handler = graph.get("Users"), graph.get("Handler")
        protocol.bind(handler, users, ["get"])
        protocol.bind(handler, users, ["update"])

        grants = protocol.ledger.grants()
        assert [grant.role for grant in grants] == [Role.READWRITE]
        assert protocol.operations_for(handler, users) == {"get", "update"}

    def test_subset_rebind_creates_nothing(self, graph, protocol):
        """Re-binding a subset of the accumulated operations adds no grant."""
        users, handler = graph.get("Users"), graph.get("Handler")
        protocol.bind(handler, users, ["get", "upsert"])
        before = protocol.ledger.grants()

        protocol.bind(handler, users, ["get"])
        protocol.bind(handler, users, ["get", "upsert"])

        assert protocol.ledger.grants() == before
        assert len(protocol.ledger) == 1

    @pytest.mark.parametrize(
        "sequence",
        [
            [["get"], ["list"]],
            [["delete"], ["get"]],
            [["tryGet"], ["insert"], ["upsert"]],
            [["list", "get"], ["get"], ["update", "delete"]],
        ],
    )
    def test_final_role_is_role_of_union(self, graph, protocol, sequence):
        """The final grant carries the role inferred from the union of all declarations."""
        users, handler = graph.get("Users"), graph.get("Handler")
        union = set()
        for operations in sequence:
            protocol.bind(handler, users, operations)
            union.update(operations)

        grants = protocol.ledger.grants_for(users)
        assert len(grants) == 1
        assert grants[0].role is infer_role(union)

    def test_unknown_operation(self, graph, protocol):
        with pytest.raises(UnknownOperationError):
            protocol.bind(graph.get("Handler"), graph.get("Users"), ["truncate"])
        assert len(protocol.ledger) == 0

    def test_empty_operations(self, graph, protocol):
        with pytest.raises(InvalidBindingError):
            protocol.bind(graph.get("Handler"), graph.get("Users"), [])

    def test_self_binding(self, graph, protocol):
        handler = graph.get("Handler")

        with pytest.raises(InvalidBindingError):
            protocol.bind(handler, handler, ["invoke"])

    def test_foreign_node(self, graph, protocol):
        """Nodes of another graph cannot be bound."""
        other = ResourceGraph().define_resource("table", "Users", {"columns": {"name": "string"}})

        with pytest.raises(InvalidResourceError):
            protocol.bind(graph.get("Handler"), other, ["get"])

    def test_policy_rejects_consumer_kind(self, graph):
        """The target policy decides which kinds may be principals."""
        protocol = BindingProtocol(
            graph,
            PermissionLedger(),
            policy=lambda consumer, producer: consumer is ResourceKind.FUNCTION,
            target="tf-gcp",
        )

        with pytest.raises(UnsupportedBindingError) as exc_info:
            protocol.bind(graph.get("Orders"), graph.get("Users"), ["get"])
        assert "tf-gcp" in str(exc_info.value)

    def test_function_binding_infers_invoke(self, graph, protocol):
        protocol.bind(graph.get("Users"), graph.get("Handler"), ["invoke"])

        assert protocol.ledger.grants()[0].role is Role.INVOKE

    def test_declarations(self, graph, protocol):
        users, orders, handler = graph.get("Users"), graph.get("Orders"), graph.get("Handler")
        protocol.bind(handler, users, ["get"])
        protocol.bind(handler, orders, ["list"])
        protocol.bind(handler, users, ["delete"])

        declarations = protocol.declarations()
        assert [(decl.producer.path, sorted(decl.operations)) for decl in declarations] == [
            ("Orders", ["list"]),
            ("Users", ["delete", "get"]),
        ]
        assert declarations[1].role is Role.READWRITE
        assert protocol.producers_of(handler) == [orders, users]
        assert protocol.consumers_of(users) == [handler]
