"""
Configuration management and loading.

Handles database location, logging level and department allowances.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import yaml

DEFAULT_LOG_LEVEL = "WARNING"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseConfig:
    """Location of the SQLite database."""
    path: str

    def __post_init__(self):
        """Validate path is not empty."""
        if not self.path or not self.path.strip():
            raise ValueError("database path cannot be empty")


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings for the CLI."""
    level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        """Validate level is a standard logging level."""
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(f"logging level must be one of: {list(VALID_LOG_LEVELS)}")

    @property
    def numeric_level(self) -> int:
        return getattr(logging, self.level)


@dataclass(frozen=True)
class DepartmentConfig:
    """Yearly allowance policy of a department."""
    allowance: float
    is_accrued_allowance: bool = False

    def __post_init__(self):
        """Validate allowance is not negative."""
        if self.allowance < 0:
            raise ValueError("allowance cannot be negative")


@dataclass(frozen=True)
class AllowanceConfig:
    """Complete application configuration."""
    database: DatabaseConfig
    logging: LoggingConfig
    departments: Dict[str, DepartmentConfig]

    def get_department(self, name: str) -> DepartmentConfig:
        """Get configuration for a department.

        Raises:
            ValueError: If department is not configured
        """
        if name not in self.departments:
            raise ValueError(f"Unknown department: {name}")
        return self.departments[name]


def load_allowance_config(path: str) -> AllowanceConfig:
    """Load and validate configuration from YAML file.

    Unknown keys are rejected so a typo never silently falls back to a
    default allowance.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AllowanceConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Allowance config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'database', 'logging', 'departments'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    # Database
    if 'database' not in raw_config:
        raise ValueError("Missing required 'database' section")
    database_data = raw_config['database']
    if not isinstance(database_data, dict):
        raise ValueError("'database' must be a dictionary")
    unknown_database_keys = set(database_data.keys()) - {'path'}
    if unknown_database_keys:
        raise ValueError(f"Unknown database keys: {unknown_database_keys}")
    if 'path' not in database_data:
        raise ValueError("Missing required 'path' in database")
    if not isinstance(database_data['path'], str):
        raise ValueError("'path' in database must be a string")
    database = DatabaseConfig(path=database_data['path'])

    # Logging
    logging_data = raw_config.get('logging', {})
    if not isinstance(logging_data, dict):
        raise ValueError("'logging' must be a dictionary")
    unknown_logging_keys = set(logging_data.keys()) - {'level'}
    if unknown_logging_keys:
        raise ValueError(f"Unknown logging keys: {unknown_logging_keys}")
    level = logging_data.get('level', DEFAULT_LOG_LEVEL)
    if not isinstance(level, str):
        raise ValueError("'level' in logging must be a string")
    logging_config = LoggingConfig(level=level.upper())

    # Departments
    if 'departments' not in raw_config:
        raise ValueError("Missing required 'departments' section")
    departments_data = raw_config['departments']
    if not isinstance(departments_data, dict):
        raise ValueError("'departments' must be a dictionary")

    departments = {}
    for name, department_data in departments_data.items():
        if not isinstance(department_data, dict):
            raise ValueError(f"Department '{name}' must be a dictionary")
        departments[str(name)] = _parse_department_config(department_data, f"departments.{name}")

    return AllowanceConfig(
        database=database,
        logging=logging_config,
        departments=departments
    )


def _parse_department_config(data: Dict, path: str) -> DepartmentConfig:
    """Parse and validate a department's allowance policy.

    Args:
        data: Department configuration data
        path: Path for error messages

    Returns:
        Validated DepartmentConfig

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'allowance', 'is_accrued_allowance'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    if 'allowance' not in data:
        raise ValueError(f"Missing required 'allowance' in {path}")

    allowance = data['allowance']
    if isinstance(allowance, bool) or not isinstance(allowance, (int, float)) or allowance < 0:
        raise ValueError(f"'allowance' in {path} must be a number >= 0")

    is_accrued = data.get('is_accrued_allowance', False)
    if not isinstance(is_accrued, bool):
        raise ValueError(f"'is_accrued_allowance' in {path} must be a boolean")

    return DepartmentConfig(
        allowance=allowance,
        is_accrued_allowance=is_accrued
    )
