"""Tests for workspace configuration loading."""

import json
from pathlib import Path

import pytest

from stratus.config import (
    GcpSettings,
    SimSettings,
    StratusConfig,
    get_config,
    load_config,
    reset_config,
)
from stratus.errors import ConfigurationError
from stratus.session import SynthesisSession


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path):
        config = load_config(tmp_path, environ={})

        assert config.target == "sim"
        assert config.outdir == tmp_path.resolve() / "target"
        assert config.log_level is None
        assert config.source is None
        assert config.gcp.region == "us-central1"

    def test_toml_file(self, tmp_path):
        (tmp_path / "stratus.toml").write_text(
            'target = "tf-gcp"\n'
            'outdir = "build/infra"\n'
            "\n"
            "[gcp]\n"
            'project_id = "my-project"\n'
            'zone = "europe-west1-b"\n'
            "\n"
            "[sim]\n"
            'state_dir = ".state"\n'
        )

        config = load_config(tmp_path, environ={})

        root = tmp_path.resolve()
        assert config.target == "tf-gcp"
        assert config.outdir == root / "build" / "infra"
        assert config.gcp.project_id == "my-project"
        assert config.gcp.zone == "europe-west1-b"
        assert config.gcp.region == "us-central1"
        assert config.sim.state_dir == root / ".state"
        assert config.source == root / "stratus.toml"

    def test_json_file(self, tmp_path):
        (tmp_path / "stratus.json").write_text(json.dumps({"target": "sim", "log_level": "info"}))

        config = load_config(tmp_path, environ={})

        assert config.target == "sim"
        assert config.log_level == "INFO"

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('target = "tf-gcp"\n')

        assert load_config(tmp_path, explicit=path, environ={}).target == "tf-gcp"

    def test_unknown_top_level_key(self, tmp_path):
        (tmp_path / "stratus.toml").write_text('targets = "sim"\n')

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path, environ={})
        assert "targets" in str(exc_info.value)

    def test_unknown_section_key(self, tmp_path):
        (tmp_path / "stratus.toml").write_text('[gcp]\nproject = "p"\n')

        with pytest.raises(ConfigurationError):
            load_config(tmp_path, environ={})

    def test_malformed_file(self, tmp_path):
        (tmp_path / "stratus.toml").write_text("target = \n")

        with pytest.raises(ConfigurationError):
            load_config(tmp_path, environ={})

    def test_environment_overrides(self, tmp_path):
        (tmp_path / "stratus.toml").write_text('target = "sim"\n[gcp]\nproject_id = "from-file"\n')
        environ = {
            "STRATUS_TARGET": "tf-gcp",
            "STRATUS_GCP_PROJECT": "from-env",
            "STRATUS_GCP_REGION": "europe-west1",
            "STRATUS_LOG_LEVEL": "debug",
            "STRATUS_OUTDIR": "/tmp/stratus-out",
            "STRATUS_SIM_STATE_DIR": "/tmp/stratus-state",
        }

        config = load_config(tmp_path, environ=environ)

        assert config.target == "tf-gcp"
        assert config.gcp.project_id == "from-env"
        assert config.gcp.region == "europe-west1"
        assert config.log_level == "DEBUG"
        assert config.outdir == Path("/tmp/stratus-out")
        assert config.sim.state_dir == Path("/tmp/stratus-state")


class TestStratusConfig:
    """Tests for StratusConfig helpers and the global cache."""

    def test_settings_for(self):
        config = StratusConfig(gcp=GcpSettings(project_id="p"), sim=SimSettings())

        assert config.settings_for("tf-gcp").project_id == "p"
        assert config.settings_for("sim") is config.sim
        assert config.settings_for("aws") is None

    def test_get_config_is_cached(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        first = get_config()

        assert get_config() is first
        reset_config()
        assert get_config() is not first

    def test_session_uses_global_config(self, tmp_path, monkeypatch):
        (tmp_path / "stratus.toml").write_text('target = "tf-gcp"\n[gcp]\nproject_id = "p"\n')
        monkeypatch.chdir(tmp_path)

        session = SynthesisSession()

        assert session.target == "tf-gcp"
        assert session.synthesizer.name == "tf-gcp"

    def test_session_target_argument_wins(self, tmp_path, monkeypatch):
        (tmp_path / "stratus.toml").write_text('target = "tf-gcp"\n')
        monkeypatch.chdir(tmp_path)

        assert SynthesisSession(target="sim").synthesizer.name == "sim"
