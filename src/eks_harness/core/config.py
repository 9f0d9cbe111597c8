"""Configuration management for the EKS Terraform harness.

This module handles YAML configuration loading, validation, and
environment variable overrides for the Terraform module location,
retry policy, AWS region/profile and the test scenarios to run.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml


DEFAULT_CONFIG_PATHS = ("config.yaml", "config/settings.yaml")

TRUTHY_VALUES = ("1", "true", "yes", "on")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class Configuration:
    """Configuration management with YAML loading and validation.

    Loads the harness settings from YAML, applies environment variable
    overrides and validates the structure before anything is provisioned.
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        If None, auto-detects config.yaml or
                        config/settings.yaml in the current directory.

        Raises:
            ConfigurationError: When configuration file is invalid
        """
        self._config: Dict[str, Any] = {}
        self._dir_from_environment = False
        self._config_path = self._resolve_config_path(config_path)
        self._load_configuration()
        self._apply_environment_overrides()
        self._validate_configuration()

    @property
    def path(self) -> Path:
        return self._config_path

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        """Resolve configuration file path.

        Raises:
            ConfigurationError: When configuration file not found
        """
        if config_path:
            path = Path(config_path)
        else:
            path = Path(DEFAULT_CONFIG_PATHS[0])
            if not path.exists():
                path = Path(DEFAULT_CONFIG_PATHS[1])

        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}. "
                "Please create a configuration file or specify a valid path."
            )

        return path

    def _load_configuration(self) -> None:
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: When YAML file is invalid
        """
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {self._config_path}: {e}"
            )
        except IOError as e:
            raise ConfigurationError(
                f"Unable to read configuration file {self._config_path}: {e}"
            )

        if not isinstance(self._config, dict):
            raise ConfigurationError(
                f"Configuration file {self._config_path} must contain a mapping"
            )

    def _validate_configuration(self) -> None:
        """Validate configuration has required fields.

        Raises:
            ConfigurationError: When required fields are missing or malformed
        """
        if "terraform" not in self._config:
            raise ConfigurationError(
                "Required configuration section 'terraform' is missing"
            )

        terraform_dir = self.get("terraform.dir")
        if terraform_dir is None:
            raise ConfigurationError("Required field 'terraform.dir' is missing")
        if not isinstance(terraform_dir, str) or not terraform_dir:
            raise ConfigurationError(
                "Field 'terraform.dir' must be a non-empty string"
            )

        for key in ("terraform.vars", "terraform.env", "terraform.backend_config",
                    "retry.retryable_errors"):
            value = self.get(key)
            if value is not None and not isinstance(value, dict):
                raise ConfigurationError(f"Field '{key}' must be a mapping")

        var_files = self.get("terraform.var_files")
        if var_files is not None and not isinstance(var_files, list):
            raise ConfigurationError("Field 'terraform.var_files' must be a list")

        region = self.get("aws.region")
        if region is not None and (not isinstance(region, str) or not region):
            raise ConfigurationError("Field 'aws.region' must be a non-empty string")

        for key in ("aws.approved_regions", "aws.forbidden_regions"):
            value = self.get(key)
            if value is not None and not isinstance(value, list):
                raise ConfigurationError(f"Field '{key}' must be a list")

        max_retries = self.get("retry.max_retries")
        if max_retries is not None and (
            isinstance(max_retries, bool)
            or not isinstance(max_retries, int)
            or max_retries < 0
        ):
            raise ConfigurationError(
                "Field 'retry.max_retries' must be a non-negative integer"
            )

        delay = self.get("retry.time_between_retries")
        if delay is not None and (
            isinstance(delay, bool)
            or not isinstance(delay, (int, float))
            or delay < 0
        ):
            raise ConfigurationError(
                "Field 'retry.time_between_retries' must be a non-negative number"
            )

        self._validate_scenarios()

    def _validate_scenarios(self) -> None:
        scenarios = self._config.get("scenarios")
        if scenarios is None:
            return
        if not isinstance(scenarios, list):
            raise ConfigurationError("Field 'scenarios' must be a list")

        seen = set()
        for index, scenario in enumerate(scenarios):
            if not isinstance(scenario, dict):
                raise ConfigurationError(
                    f"Scenario at position {index} must be a mapping"
                )
            name = scenario.get("name")
            if not isinstance(name, str) or not name:
                raise ConfigurationError(
                    f"Scenario at position {index} is missing a 'name'"
                )
            if name in seen:
                raise ConfigurationError(f"Duplicate scenario name: {name}")
            seen.add(name)
            for key in ("vars", "retryable_errors"):
                if key in scenario and not isinstance(scenario[key], dict):
                    raise ConfigurationError(
                        f"Field '{key}' of scenario '{name}' must be a mapping"
                    )
            required = scenario.get("required_outputs")
            if required is not None and (
                not isinstance(required, list)
                or not all(isinstance(item, str) for item in required)
            ):
                raise ConfigurationError(
                    f"Field 'required_outputs' of scenario '{name}' must be a list of names"
                )
            for key in ("check_status", "check_vpc", "check_idempotent"):
                if key in scenario and not isinstance(scenario[key], bool):
                    raise ConfigurationError(
                        f"Field '{key}' of scenario '{name}' must be true or false"
                    )

    def _apply_environment_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if "AWS_REGION" in os.environ:
            self._set_nested_value("aws.region", os.environ["AWS_REGION"])

        if "AWS_PROFILE" in os.environ:
            self._set_nested_value("aws.profile_name", os.environ["AWS_PROFILE"])

        if "TERRAFORM_DIR" in os.environ:
            self._set_nested_value("terraform.dir", os.environ["TERRAFORM_DIR"])
            self._dir_from_environment = True

        if "SKIP_TEARDOWN" in os.environ:
            self._set_nested_value(
                "teardown.skip",
                os.environ["SKIP_TEARDOWN"].strip().lower() in TRUTHY_VALUES,
            )

    def _set_nested_value(self, key_path: str, value: Any) -> None:
        """Set nested configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.region')
            value: Value to set
        """
        keys = key_path.split(".")
        current = self._config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'retry.max_retries')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_region(self) -> Optional[str]:
        """Configured AWS region, or None to pick a stable region at random."""
        return self.get("aws.region")

    def get_profile_name(self) -> Optional[str]:
        return self.get("aws.profile_name")

    def get_approved_regions(self) -> Optional[List[str]]:
        return self.get("aws.approved_regions")

    def get_forbidden_regions(self) -> Optional[List[str]]:
        return self.get("aws.forbidden_regions")

    def get_terraform_dir(self) -> str:
        """Terraform module directory.

        Relative paths from the config file resolve against the file's
        directory; a relative TERRAFORM_DIR resolves against the current
        working directory.
        """
        path = Path(self.get("terraform.dir"))
        if self._dir_from_environment and not path.is_absolute():
            return str(path.resolve())
        if not path.is_absolute():
            path = self._config_path.resolve().parent / path
            if not path.exists():
                path = Path(self.get("terraform.dir")).resolve()
        return str(path)

    def get_terraform_binary(self) -> str:
        return self.get("terraform.binary", "terraform")

    def get_terraform_vars(self) -> Dict[str, Any]:
        return dict(self.get("terraform.vars") or {})

    def get_var_files(self) -> List[str]:
        return list(self.get("terraform.var_files") or [])

    def get_terraform_env(self) -> Dict[str, str]:
        return {k: str(v) for k, v in (self.get("terraform.env") or {}).items()}

    def get_backend_config(self) -> Dict[str, Any]:
        return dict(self.get("terraform.backend_config") or {})

    def get_command_timeout(self) -> Optional[float]:
        return self.get("terraform.command_timeout")

    def get_max_retries(self) -> int:
        return self.get("retry.max_retries", 3)

    def get_time_between_retries(self) -> float:
        return self.get("retry.time_between_retries", 5)

    def get_retryable_errors(self) -> Dict[str, str]:
        return dict(self.get("retry.retryable_errors") or {})

    def get_expected_cluster_status(self) -> str:
        return self.get("cluster.expected_status", "ACTIVE")

    def get_cluster_wait_timeout(self) -> int:
        """Seconds to wait for the cluster status after apply (0 disables)."""
        return self.get("cluster.wait_timeout", 0)

    def skip_teardown(self) -> bool:
        return bool(self.get("teardown.skip", False))

    def get_scenarios(self) -> List[Dict[str, Any]]:
        """Raw scenario mappings; empty when none are configured."""
        return [dict(s) for s in self._config.get("scenarios") or []]

    def to_dict(self) -> Dict[str, Any]:
        """Get complete configuration as dictionary."""
        return self._config.copy()
