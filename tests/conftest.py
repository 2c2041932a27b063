from collections import namedtuple

import pytest

from stratus.config import GcpSettings, StratusConfig, reset_config
from stratus.runtime.memory import reset_memory_tables
from stratus.session import SynthesisSession


def pytest_configure(config):
    """Register markers for pytest."""
    config.addinivalue_line("markers", "gcp: mark test as requiring google-cloud-bigtable")


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    """Isolate configuration and in-memory tables between tests."""
    for name in ("STRATUS_TARGET", "STRATUS_OUTDIR", "STRATUS_LOG_LEVEL", "STRATUS_SIM_STATE_DIR", "STRATUS_GCP_PROJECT"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    reset_memory_tables()
    yield
    reset_config()
    reset_memory_tables()


@pytest.fixture
def sim_config(tmp_path):
    """Simulator configuration writing into a temporary directory."""
    return StratusConfig(target="sim", outdir=tmp_path / "target")


@pytest.fixture
def gcp_config(tmp_path):
    """GCP configuration with a test project."""
    return StratusConfig(
        target="tf-gcp",
        outdir=tmp_path / "target",
        gcp=GcpSettings(project_id="test-project"),
    )


@pytest.fixture
def sim_session(sim_config):
    return SynthesisSession(config=sim_config)


@pytest.fixture
def gcp_session(gcp_config):
    return SynthesisSession(config=gcp_config)


Cell = namedtuple("Cell", ["value"])


class FakePartialRow:
    def __init__(self, cells):
        self.cells = cells


class FakeDirectRow:
    """Buffers mutations until ``commit`` like ``google.cloud.bigtable.row.DirectRow``."""

    def __init__(self, table, row_key):
        self._table = table
        self._row_key = row_key
        self._mutations = []

    def delete(self):
        self._mutations.append(("delete",))

    def set_cell(self, family, qualifier, value):
        self._mutations.append(("set", family, qualifier, value))

    def commit(self):
        for mutation in self._mutations:
            if mutation[0] == "delete":
                self._table.rows.pop(self._row_key, None)
            else:
                _, family, qualifier, value = mutation
                families = self._table.rows.setdefault(self._row_key, {})
                families.setdefault(family, {})[qualifier] = [Cell(value)]
        self._mutations = []


class FakeBigtable:
    """Just enough of ``google.cloud.bigtable.table.Table`` for the table client."""

    def __init__(self):
        self.rows = {}
        self.present = True
        self.fail_with = None

    def exists(self):
        return self.present

    def read_row(self, row_key, filter_=None):
        if self.fail_with:
            raise self.fail_with
        cells = self.rows.get(row_key)
        return FakePartialRow(cells) if cells else None

    def read_rows(self, filter_=None):
        return [FakePartialRow(cells) for _, cells in sorted(self.rows.items())]

    def direct_row(self, row_key):
        return FakeDirectRow(self, row_key)


@pytest.fixture
def fake_bigtable():
    """An in-memory stand-in for a Bigtable table handle."""
    return FakeBigtable()
