"""Tests for resource kinds, configuration models and the resource graph."""

import pytest

from stratus.core.kinds import ResourceKind, get_kind_spec
from stratus.core.node import ResourceGraph
from stratus.errors import (
    ConfigurationError,
    DuplicateResourceError,
    InvalidBindingError,
    InvalidResourceError,
    SchemaValidationError,
    UnknownOperationError,
)
from stratus.resources.function import Duration, FunctionConfig
from stratus.resources.table import ColumnType, TableConfig, TableOperation


class TestKindRegistry:
    """Tests for the resource kind registry."""

    def test_table_vocabulary(self):
        """Tables expose the seven data operations."""
        spec = get_kind_spec("table")

        assert spec.kind is ResourceKind.TABLE
        assert spec.operations == {"get", "tryGet", "list", "insert", "update", "upsert", "delete"}

    def test_function_vocabulary(self):
        """Functions expose invoke only."""
        assert get_kind_spec(ResourceKind.FUNCTION).operations == {"invoke"}

    def test_unknown_kind(self):
        """Unknown kinds raise InvalidResourceError."""
        with pytest.raises(InvalidResourceError) as exc_info:
            get_kind_spec("queue")
        assert "queue" in str(exc_info.value)

    def test_normalize_accepts_enum_members(self):
        """Enum members and wire identifiers are interchangeable."""
        spec = get_kind_spec("table")

        assert spec.normalize_operations([TableOperation.TRY_GET, "get"]) == {"tryGet", "get"}

    def test_normalize_accepts_single_operation(self):
        """A single identifier is one operation, not a sequence of characters."""
        spec = get_kind_spec("table")

        assert spec.normalize_operations("get") == {"get"}
        assert spec.normalize_operations(TableOperation.UPSERT) == {"upsert"}
        assert get_kind_spec("function").normalize_operations("invoke") == {"invoke"}

    def test_normalize_rejects_unknown_operation(self):
        """Operations outside the vocabulary raise UnknownOperationError."""
        with pytest.raises(UnknownOperationError) as exc_info:
            get_kind_spec("table").normalize_operations(["get", "truncate"], resource="Users")

        assert exc_info.value.operation == "truncate"
        assert exc_info.value.resource == "Users"

    def test_normalize_rejects_empty_set(self):
        """An empty operation set is rejected."""
        with pytest.raises(InvalidBindingError):
            get_kind_spec("table").normalize_operations([])


class TestTableConfig:
    """Tests for the table configuration model."""

    def test_defaults(self):
        """Primary key defaults to 'id' and no rows are provisioned."""
        config = TableConfig(columns={"name": "string"})

        assert config.primary_key == "id"
        assert config.columns == {"name": ColumnType.STRING}
        assert config.initial_rows == {}
        assert config.columns_spec() == {"name": "string"}

    def test_columns_required(self):
        """At least one column is required."""
        with pytest.raises(ValueError):
            TableConfig(columns={})

    def test_unknown_column_type(self):
        """Column types outside the supported set are rejected."""
        with pytest.raises(ValueError):
            TableConfig(columns={"name": "blob"})

    def test_primary_key_not_a_column(self):
        """The primary key cannot double as a column."""
        with pytest.raises(ValueError):
            TableConfig(columns={"id": "string", "name": "string"})

    def test_initial_rows_validated(self):
        """Initial rows must match the columns."""
        with pytest.raises(SchemaValidationError) as exc_info:
            TableConfig(columns={"name": "string"}, initial_rows={"r1": {"age": 3}})
        assert exc_info.value.field == "age"

    def test_initial_rows_reject_empty_key(self):
        """Initial rows need a non-empty primary key value."""
        with pytest.raises(SchemaValidationError) as exc_info:
            TableConfig(columns={"name": "string"}, initial_rows={"": {"name": "Ada"}})
        assert exc_info.value.field == "id"

    def test_initial_rows_reject_empty_key_custom_primary_key(self):
        """The error names the configured primary key."""
        with pytest.raises(SchemaValidationError) as exc_info:
            TableConfig(columns={"name": "string"}, primary_key="email", initial_rows={"": {"name": "Ada"}})
        assert exc_info.value.field == "email"


class TestFunctionConfig:
    """Tests for the function configuration model."""

    def test_defaults(self):
        """One minute timeout and 128 MB of memory by default."""
        config = FunctionConfig(entrypoint="handler.zip")

        assert config.timeout.total_seconds == 60
        assert config.memory_mb == 128
        assert config.env == {}

    def test_duration(self):
        """Durations sum their parts."""
        assert Duration(hours=1, minutes=2, seconds=3).total_seconds == 3723
        assert Duration.of_seconds(90).total_seconds == 90

    def test_zero_timeout_rejected(self):
        """Timeouts must be positive."""
        with pytest.raises(ValueError):
            FunctionConfig(entrypoint="handler.zip", timeout={"seconds": 0})

    def test_memory_bounds(self):
        """Memory below 128 MB is rejected."""
        with pytest.raises(ValueError):
            FunctionConfig(entrypoint="handler.zip", memory_mb=64)


class TestResourceGraph:
    """Tests for ResourceGraph.define_resource."""

    def test_define_table(self):
        """A valid definition returns a node with a validated config."""
        graph = ResourceGraph()
        node = graph.define_resource("table", "Users", {"columns": {"name": "string"}})

        assert node.kind is ResourceKind.TABLE
        assert node.path == "Users"
        assert isinstance(node.config, TableConfig)
        assert node.physical_name is None
        assert node in graph

    def test_accepts_model_instance(self):
        """A config model instance is copied onto the node."""
        graph = ResourceGraph()
        config = FunctionConfig(entrypoint="handler.zip", env={"MODE": "prod"})

        node = graph.define_resource("function", "Handler", config)

        assert node.config == config
        assert node.config is not config
        assert node.config.env is not config.env

    def test_shared_model_instance_stays_independent(self):
        """Two tables defined from one config do not share rows."""
        graph = ResourceGraph()
        config = TableConfig(columns={"name": "string"})

        users = graph.define_resource("table", "Users", config)
        admins = graph.define_resource("table", "Admins", config)
        users.config.initial_rows["u1"] = {"name": "Ada"}

        assert admins.config.initial_rows == {}
        assert config.initial_rows == {}

    def test_rejects_wrong_model(self):
        """A model of another kind is rejected."""
        graph = ResourceGraph()

        with pytest.raises(InvalidResourceError):
            graph.define_resource("table", "Users", FunctionConfig(entrypoint="handler.zip"))

    def test_invalid_config_carries_identity(self):
        """Validation failures name the resource."""
        graph = ResourceGraph()

        with pytest.raises(InvalidResourceError) as exc_info:
            graph.define_resource("table", "Users", {"columns": {"name": "string"}, "ttl": 3})
        assert exc_info.value.resource == "Users"

    def test_invalid_initial_row_carries_identity(self):
        """Row validation during definition names the table and the field."""
        graph = ResourceGraph()

        with pytest.raises(SchemaValidationError) as exc_info:
            graph.define_resource(
                "table",
                "Users",
                {"columns": {"name": "string"}, "initial_rows": {"u1": {"name": 1}}},
            )
        assert exc_info.value.resource == "Users"
        assert exc_info.value.field == "name"

    def test_unknown_kind(self):
        """Unknown kinds are rejected eagerly."""
        with pytest.raises(InvalidResourceError):
            ResourceGraph().define_resource("queue", "Jobs", {})

    def test_malformed_identity(self):
        """Malformed identities are rejected eagerly."""
        with pytest.raises(InvalidResourceError):
            ResourceGraph().define_resource("table", "9lives", {"columns": {"name": "string"}})

    def test_duplicate_identity(self):
        """Identities are unique within a graph."""
        graph = ResourceGraph()
        graph.define_resource("table", "Users", {"columns": {"name": "string"}})

        with pytest.raises(DuplicateResourceError):
            graph.define_resource("function", "Users", {"entrypoint": "handler.zip"})

    def test_nodes_in_address_order(self):
        """Nodes iterate in address order regardless of definition order."""
        graph = ResourceGraph()
        for identity in ["b", "a/z", "a"]:
            graph.define_resource("table", identity, {"columns": {"name": "string"}})

        assert [node.path for node in graph] == ["a", "a/z", "b"]
        assert len(graph) == 3

    def test_get_undefined(self):
        """Looking up an undefined identity fails."""
        with pytest.raises(InvalidResourceError):
            ResourceGraph().get("Users")

    def test_physical_name_bound_once(self):
        """The physical name cannot change once bound."""
        node = ResourceGraph().define_resource("table", "Users", {"columns": {"name": "string"}})
        node.bind_physical_name("users-1")
        node.bind_physical_name("users-1")

        with pytest.raises(ConfigurationError):
            node.bind_physical_name("users-2")
        assert node.physical_name == "users-1"
