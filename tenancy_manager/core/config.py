"""
Configuration Management

Handles loading, validating and templating configuration files for the
Tenancy Manager.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import ErrorMessages, FileConstants
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ManagerConfig:
    """Effective settings of one manager process"""
    workers: int = 1
    resync_seconds: int = 120
    max_conflict_retries: int = 5
    backoff_base_seconds: float = 0.005
    backoff_max_seconds: float = 300.0
    peering: str = ""
    liveness_endpoint: str = ""
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    in_cluster: bool = False
    skip_tls: bool = False
    debug: bool = False


class ConfigManager:
    """Manages configuration loading and validation"""

    # Configuration schema - defines expected structure and types
    CONFIG_SCHEMA = {
        'manager': {
            'type': dict,
            'required': False,
            'fields': {
                'workers': {'type': int, 'required': False},
                'resync_seconds': {'type': int, 'required': False},
                'max_conflict_retries': {'type': int, 'required': False},
                'backoff_base_seconds': {'type': (int, float), 'required': False},
                'backoff_max_seconds': {'type': (int, float), 'required': False},
                'peering': {'type': str, 'required': False},
                'liveness_endpoint': {'type': str, 'required': False},
            }
        },
        'kubernetes': {
            'type': dict,
            'required': False,
            'fields': {
                'kubeconfig': {'type': str, 'required': False},
                'context': {'type': str, 'required': False},
                'in_cluster': {'type': bool, 'required': False},
                'skip_tls': {'type': bool, 'required': False},
            }
        },
        'global': {
            'type': dict,
            'required': False,
            'fields': {
                'debug': {'type': bool, 'required': False},
            }
        },
    }

    def __init__(self):
        """Initialize configuration manager"""
        self.config_data = {}
        self.config_file_path = None

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file

        ``${VAR}`` references are expanded from the environment before parsing.

        Args:
            config_path: Path to configuration file

        Returns:
            Dict containing configuration data

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid
        """
        config_file = Path(os.path.expanduser(config_path))

        if not config_file.exists():
            raise ConfigurationError(ErrorMessages.ConfigError.CONFIG_FILE_NOT_FOUND.format(config_path=config_path))

        if not config_file.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_file, 'r') as f:
                self.config_data = yaml.safe_load(os.path.expandvars(f.read())) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}")

        self.config_file_path = config_path
        logger.info(f"Successfully loaded configuration from {config_path}")

        self._validate_config()
        return self.config_data

    def find_config(self) -> Optional[str]:
        """
        Locate the first existing configuration file in the default locations

        Returns:
            Path of the configuration file, or None when none exists
        """
        for location in FileConstants.DEFAULT_CONFIG_LOCATIONS:
            candidate = Path(os.path.expanduser(location))
            if candidate.is_file():
                logger.debug(f"Found configuration file at {candidate}")
                return str(candidate)
        return None

    def _validate_config(self) -> None:
        """
        Validate configuration structure and values

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not isinstance(self.config_data, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        self._validate_against_schema(self.config_data, self.CONFIG_SCHEMA, "config")

    def _validate_against_schema(self, data: Dict[str, Any], schema: Dict[str, Any], path: str = "") -> None:
        """
        Validate data against schema definition

        Args:
            data: Data to validate
            schema: Schema definition
            path: Current path for error reporting

        Raises:
            ConfigurationError: If data doesn't match schema
        """
        for key, field_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key in data:
                value = data[key]

                # Skip None values for optional fields
                if value is None and not field_schema.get('required', False):
                    continue

                expected_type = field_schema['type']
                # bool is an int subclass; reject it for numeric fields
                if not isinstance(value, expected_type) or (
                        isinstance(value, bool) and expected_type is not bool):
                    if isinstance(expected_type, tuple):
                        type_name = ' or '.join(t.__name__ for t in expected_type)
                    else:
                        type_name = expected_type.__name__
                    raise ConfigurationError(f"{current_path} must be a {type_name}")

                # Recursively validate nested dictionaries
                if expected_type == dict and 'fields' in field_schema:
                    self._validate_against_schema(value, field_schema['fields'], current_path)

            elif field_schema.get('required', False):
                raise ConfigurationError(f"Required field {current_path} is missing")

    def get_config(self) -> Dict[str, Any]:
        return self.config_data.copy()

    def get_section(self, section: str) -> Dict[str, Any]:
        return self.config_data.get(section) or {}

    def get_value(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key

        Args:
            key: Configuration key (supports dot notation like 'manager.workers')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config_data
        try:
            for k in key.split('.'):
                value = value[k]
        except (KeyError, TypeError):
            return default
        return default if value is None else value

    def build_manager_config(self, overrides: Optional[Dict[str, Any]] = None) -> ManagerConfig:
        """
        Build the effective manager settings.

        Values come from the loaded file; non-None ``overrides`` (usually CLI
        flags) take precedence.

        Args:
            overrides: ManagerConfig field names mapped to values

        Returns:
            ManagerConfig

        Raises:
            ConfigurationError: If the resulting settings are out of range
        """
        defaults = ManagerConfig()
        config = ManagerConfig(
            workers=self.get_value('manager.workers', defaults.workers),
            resync_seconds=self.get_value('manager.resync_seconds', defaults.resync_seconds),
            max_conflict_retries=self.get_value('manager.max_conflict_retries', defaults.max_conflict_retries),
            backoff_base_seconds=float(self.get_value('manager.backoff_base_seconds',
                                                      defaults.backoff_base_seconds)),
            backoff_max_seconds=float(self.get_value('manager.backoff_max_seconds', defaults.backoff_max_seconds)),
            peering=self.get_value('manager.peering', defaults.peering),
            liveness_endpoint=self.get_value('manager.liveness_endpoint', defaults.liveness_endpoint),
            kubeconfig=self.get_value('kubernetes.kubeconfig', defaults.kubeconfig),
            context=self.get_value('kubernetes.context', defaults.context),
            in_cluster=self.get_value('kubernetes.in_cluster', defaults.in_cluster),
            skip_tls=self.get_value('kubernetes.skip_tls', defaults.skip_tls),
            debug=self.get_value('global.debug', defaults.debug),
        )

        for name, value in (overrides or {}).items():
            if value is None:
                continue
            if not hasattr(config, name):
                raise ConfigurationError(f"Unknown configuration override: {name}")
            setattr(config, name, value)

        if config.workers < 1:
            raise ConfigurationError("manager.workers must be at least 1")
        if config.max_conflict_retries < 1:
            raise ConfigurationError("manager.max_conflict_retries must be at least 1")
        if config.backoff_base_seconds <= 0 or config.backoff_max_seconds < config.backoff_base_seconds:
            raise ConfigurationError("manager backoff must satisfy 0 < backoff_base_seconds <= backoff_max_seconds")
        if config.resync_seconds < 0:
            raise ConfigurationError("manager.resync_seconds must not be negative")

        return config

    def generate_config_template(self, output_dir: str = None) -> str:
        """
        Generate configuration template file

        Args:
            output_dir: Directory to save template (optional)

        Returns:
            str: Path to generated template file

        Raises:
            ConfigurationError: If template generation fails
        """
        if output_dir:
            output_path = Path(output_dir)
            config_file = output_path / FileConstants.DEFAULT_CONFIG_FILE
        else:
            output_path = None
            config_file = Path(FileConstants.DEFAULT_CONFIG_FILE)

        try:
            if output_path is not None:
                output_path.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'w') as f:
                f.write(self.get_config_template_content())
        except OSError as e:
            raise ConfigurationError(f"Failed to generate configuration template: {e}")

        logger.info(f"Configuration template generated: {config_file}")
        return str(config_file)

    def _dict_to_yaml_with_comments(self, data: Dict[str, Any], indent: int = 0) -> str:
        """
        Convert dictionary to YAML string preserving comments

        Keys starting with ``#`` are emitted as comment lines.
        """
        yaml_lines = []
        indent_str = "  " * indent

        for key, value in data.items():
            if key.startswith("#"):
                yaml_lines.append(f"{indent_str}{key}")
            elif isinstance(value, dict):
                yaml_lines.append(f"{indent_str}{key}:")
                yaml_lines.append(self._dict_to_yaml_with_comments(value, indent + 1))
            elif isinstance(value, bool):
                yaml_lines.append(f"{indent_str}{key}: {str(value).lower()}")
            elif isinstance(value, str):
                yaml_lines.append(f'{indent_str}{key}: "{value}"')
            else:
                yaml_lines.append(f"{indent_str}{key}: {value}")

        return "\n".join(yaml_lines)

    def get_config_template_content(self) -> str:
        """
        Generate configuration template content as string without file I/O

        Returns:
            str: YAML configuration template content
        """
        defaults = ManagerConfig()
        template = {
            "# Tenancy Manager Configuration File": None,
            "# Environment variables are expanded with ${VAR} syntax": None,
            "manager": {
                "# Handler threads per controller": None,
                "workers": defaults.workers,
                "# Periodic full resync (0 disables)": None,
                "resync_seconds": defaults.resync_seconds,
                "max_conflict_retries": defaults.max_conflict_retries,
                "backoff_base_seconds": defaults.backoff_base_seconds,
                "backoff_max_seconds": defaults.backoff_max_seconds,
                "# KopfPeering object used for leader election (empty runs standalone)": None,
                "peering": defaults.peering,
                "# e.g. http://0.0.0.0:8080/healthz (empty disables)": None,
                "liveness_endpoint": defaults.liveness_endpoint,
            },
            "kubernetes": {
                "kubeconfig": "~/.kube/config",
                "context": "",
                "in_cluster": defaults.in_cluster,
                "skip_tls": defaults.skip_tls,
            },
            "global": {
                "debug": defaults.debug,
            },
        }

        return self._dict_to_yaml_with_comments(template) + "\n"
