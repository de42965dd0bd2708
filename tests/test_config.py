"""Tests for configuration management."""

import tempfile
from pathlib import Path

import pytest

from handoff.validation.config import Config, ConfigError, HandoffConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, temp_dir):
    """Keep the developer's own environment out of the tests."""
    monkeypatch.delenv("HANDOFF_ROOT", raising=False)
    monkeypatch.setenv("HANDOFF_CONFIG", str(temp_dir / "config.yaml"))


class TestHandoffConfig:
    """Tests for the HandoffConfig schema."""

    def test_default_config(self):
        """Test default configuration values."""
        config = HandoffConfig()

        assert config.root is None
        assert config.selection.report_window_days == 3
        assert config.selection.max_reports == 10
        assert config.context.budget_chars == 24000
        assert config.context.report_tail_lines == 50
        assert config.context.instructions
        assert config.context.include_patterns == []
        assert config.context.max_include_bytes == 50_000
        assert config.session.focus_items

    def test_invalid_values(self):
        """Test rejecting out-of-range values."""
        config = Config(data={"selection": {"max_reports": 0}})
        with pytest.raises(ConfigError):
            config.merged


class TestConfig:
    """Tests for Config loading and root resolution."""

    def test_default_path_from_env(self, temp_dir):
        """Test the config path override."""
        assert Config.default_path() == temp_dir / "config.yaml"

    def test_load_missing_file(self, temp_dir):
        """Test loading when no file exists."""
        config = Config.load()
        assert config.merged.root is None
        assert config.path == temp_dir / "config.yaml"

    def test_load_yaml(self, temp_dir):
        """Test loading values from YAML."""
        (temp_dir / "config.yaml").write_text(
            "root: /tmp/context\n"
            "selection:\n"
            "  report_window_days: 5\n"
            "context:\n"
            "  budget_chars: 8000\n"
        )
        config = Config.load()

        assert config.merged.root == "/tmp/context"
        assert config.selection_policy().report_window_days == 5
        assert config.selection_policy().max_reports == 10
        assert config.merged.context.budget_chars == 8000

    def test_load_invalid_yaml(self, temp_dir):
        """Test loading malformed YAML."""
        (temp_dir / "config.yaml").write_text("root: [unclosed\n")
        with pytest.raises(ConfigError):
            Config.load()

    def test_load_non_mapping(self, temp_dir):
        """Test loading YAML that is not a mapping."""
        (temp_dir / "config.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            Config.load()

    def test_no_root_anywhere(self):
        """Test resolving a root when none is configured."""
        with pytest.raises(ConfigError) as exc_info:
            Config.load().resolve_root(None)
        assert "--root" in str(exc_info.value)

    def test_flag_wins(self, temp_dir, monkeypatch):
        """Test that the flag beats the environment and file."""
        flag_root = temp_dir / "flag"
        env_root = temp_dir / "env"
        flag_root.mkdir()
        env_root.mkdir()
        monkeypatch.setenv("HANDOFF_ROOT", str(env_root))

        config = Config(data={"root": str(temp_dir)})
        assert config.resolve_root(str(flag_root)) == flag_root

    def test_env_beats_file(self, temp_dir, monkeypatch):
        """Test that the environment beats the file."""
        env_root = temp_dir / "env"
        env_root.mkdir()
        monkeypatch.setenv("HANDOFF_ROOT", str(env_root))

        config = Config(data={"root": str(temp_dir)})
        assert config.resolve_root(None) == env_root

    def test_file_root(self, temp_dir):
        """Test a root taken from the file."""
        config = Config(data={"root": str(temp_dir)})
        assert config.resolve_root(None) == temp_dir

    def test_missing_root_directory(self, temp_dir):
        """Test a root that does not exist."""
        with pytest.raises(ConfigError):
            Config().resolve_root(str(temp_dir / "nope"))

    def test_root_is_a_file(self, temp_dir):
        """Test a root that is a regular file."""
        target = temp_dir / "file.md"
        target.write_text("x")
        with pytest.raises(ConfigError):
            Config().resolve_root(str(target))

    def test_set_root_and_save(self, temp_dir):
        """Test persisting the root."""
        config = Config.load()
        config.set_root(str(temp_dir))
        path = config.save()

        reloaded = Config.load(path)
        assert reloaded.merged.root == str(temp_dir)
        assert reloaded.resolve_root(None) == temp_dir
