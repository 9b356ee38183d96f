"""
Tests for configuration loading and validation
"""

import pytest

from tenancy_manager.core.config import ConfigManager, ManagerConfig
from tenancy_manager.core.exceptions import ConfigurationError


def _write(tmp_path, content: str) -> str:
    path = tmp_path / "tenancy-manager.yaml"
    path.write_text(content)
    return str(path)


class TestConfigManager:
    """Test ConfigManager"""

    def test_load_valid_config(self, tmp_path):
        # Arrange
        path = _write(tmp_path, "manager:\n  workers: 4\nglobal:\n  debug: true\n")
        manager = ConfigManager()

        # Act
        data = manager.load_config(path)

        # Assert
        assert data == {'manager': {'workers': 4}, 'global': {'debug': True}}
        assert manager.config_file_path == path
        assert manager.get_value('manager.workers') == 4
        assert manager.get_value('manager.missing', 'fallback') == 'fallback'

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager().load_config(str(tmp_path / "nope.yaml"))

        assert "Configuration file not found" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "manager: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ConfigManager().load_config(path)

    @pytest.mark.parametrize("content", [
        "manager:\n  workers: two\n",
        "manager:\n  workers: true\n",
        "kubernetes:\n  in_cluster: yes-please\n",
        "manager:\n  peering: 3\n",
        "- just\n- a list\n",
    ])
    def test_schema_violations(self, tmp_path, content):
        path = _write(tmp_path, content)

        with pytest.raises(ConfigurationError):
            ConfigManager().load_config(path)

    def test_environment_variables_are_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TENANCY_KUBECONFIG", "/etc/tenancy/kubeconfig")
        path = _write(tmp_path, "kubernetes:\n  kubeconfig: ${TENANCY_KUBECONFIG}\n")

        manager = ConfigManager()
        manager.load_config(path)

        assert manager.get_value('kubernetes.kubeconfig') == "/etc/tenancy/kubeconfig"

    def test_find_config_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        assert ConfigManager().find_config() is None

        _write(tmp_path, "global:\n  debug: true\n")

        assert ConfigManager().find_config() == "tenancy-manager.yaml"


class TestBuildManagerConfig:
    """Test effective settings"""

    def test_defaults(self):
        assert ConfigManager().build_manager_config() == ManagerConfig()

    def test_file_values_and_overrides(self, tmp_path):
        # Arrange
        path = _write(tmp_path, "manager:\n  workers: 4\n  resync_seconds: 30\n  peering: tenancy\n")
        manager = ConfigManager()
        manager.load_config(path)

        # Act
        settings = manager.build_manager_config({'workers': 8, 'debug': None})

        # Assert
        assert settings.workers == 8
        assert settings.resync_seconds == 30
        assert settings.peering == "tenancy"
        assert settings.debug is False

    @pytest.mark.parametrize("overrides", [
        {'workers': 0},
        {'max_conflict_retries': 0},
        {'backoff_base_seconds': 10.0, 'backoff_max_seconds': 1.0},
        {'resync_seconds': -1},
        {'unknown': 1},
    ])
    def test_invalid_settings(self, overrides):
        with pytest.raises(ConfigurationError):
            ConfigManager().build_manager_config(overrides)


class TestConfigTemplate:
    """Test configuration template generation"""

    def test_generated_template_loads_back(self, tmp_path):
        # Arrange
        manager = ConfigManager()

        # Act
        path = manager.generate_config_template(str(tmp_path / "conf"))
        loaded = ConfigManager()
        loaded.load_config(path)

        # Assert
        assert path.endswith("tenancy-manager.yaml")
        assert loaded.get_value('manager.workers') == 1
        assert loaded.build_manager_config().peering == ""
        assert loaded.build_manager_config().kubeconfig == "~/.kube/config"

    def test_template_content_has_comments(self):
        content = ConfigManager().get_config_template_content()

        assert content.startswith("# Tenancy Manager Configuration File")
        assert "  # Handler threads per controller" in content
        assert 'peering: ""' in content
