"""Tests for configuration loading."""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from masque.catalog.store import TemplateStore
from masque.config import MasqueConfig, load_config
from masque.models import NoiseDistribution, NoiseLevel


def test_default_config() -> None:
    """Loading with no file should produce valid defaults."""
    config = load_config(Path("/nonexistent/masque.yaml"))
    assert config.server.port == 8080
    assert config.identity.max_attempts == 100
    assert config.noise.level is NoiseLevel.MEDIUM
    assert config.catalog.data_path is None


def test_load_config_from_yaml() -> None:
    """Configuration should load from a YAML file."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write("""
server:
  port: 9090
  host: 0.0.0.0
catalog:
  weights_file: ./weights.yaml
identity:
  max_attempts: 10
noise:
  level: high
  distribution: gaussian
logging:
  level: debug
""")
        f.flush()
        config = load_config(f.name)

    assert config.server.port == 9090
    assert config.server.host == "0.0.0.0"
    assert config.catalog.weights_file == "./weights.yaml"
    assert config.identity.max_attempts == 10
    assert config.noise.level is NoiseLevel.HIGH
    assert config.noise.distribution is NoiseDistribution.GAUSSIAN
    assert config.logging.level == "debug"


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "masque.yaml"
    path.write_text("")
    assert load_config(path) == MasqueConfig()


def test_invalid_values_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "masque.yaml"
    path.write_text("noise:\n  level: deafening\n")
    with pytest.raises(ValidationError):
        load_config(path)

    path.write_text("identity:\n  max_attempts: 0\n")
    with pytest.raises(ValidationError):
        load_config(path)


def test_config_model_defaults() -> None:
    """MasqueConfig should have sensible defaults for all fields."""
    config = MasqueConfig()
    assert config.server.host == "127.0.0.1"
    assert config.logging.level == "info"
    assert config.logging.output == "stderr"
    assert config.catalog.weights_json is None


def test_store_from_config(tmp_path: Path) -> None:
    """A store built from the catalog section should honor its override source."""
    path = tmp_path / "weights.json"
    path.write_text('{"linux": {"chrome": {"default": 42}}}')
    config = MasqueConfig.model_validate({"catalog": {"weights_file": str(path)}})

    store = TemplateStore.from_config(config.catalog)
    assert {t.weight for t in store.get_by_os_and_browser("linux", "chrome")} == {42}
