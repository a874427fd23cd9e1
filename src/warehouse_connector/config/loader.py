"""Loader for warehouse layout files in JSON or YAML."""

import os
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Union

from pydantic import ValidationError

from .schema import WarehouseConfig
from ..utils.logging import get_logger


class ConfigurationError(Exception):
    """Raised when a layout file cannot be loaded or validated."""
    pass


class ConfigLoader:
    """Loads and validates warehouse layouts from files and dictionaries."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> WarehouseConfig:
        """Load a layout from a JSON or YAML file.

        Args:
            file_path: Path to the layout file

        Returns:
            Validated WarehouseConfig

        Raises:
            ConfigurationError: If the file cannot be read, parsed or validated
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading warehouse layout", file_path=str(file_path))

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if file_path.suffix.lower() in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                elif file_path.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        return self.load_from_dict(data or {})

    def load_from_dict(self, data: Dict[str, Any]) -> WarehouseConfig:
        """Validate a layout held in a dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Layout must be a mapping, got {type(data).__name__}")

        data = self._apply_env_overrides(data)

        try:
            config = WarehouseConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid warehouse layout: {e}") from e

        self.logger.info(
            "Warehouse layout loaded",
            datasets=len(config.datasets),
            tables=config.table_count
        )
        return config

    def save_to_file(self, config: WarehouseConfig, file_path: Union[str, Path]) -> None:
        """Write a layout back out as JSON or YAML, chosen by suffix."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        data = config.model_dump(mode="json", exclude_none=True)

        with open(file_path, 'w', encoding='utf-8') as f:
            if file_path.suffix.lower() in ['.yaml', '.yml']:
                yaml.safe_dump(data, f, sort_keys=False)
            elif file_path.suffix.lower() == '.json':
                json.dump(data, f, indent=2)
            else:
                raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")

        self.logger.info("Warehouse layout saved", file_path=str(file_path))

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        project_id = os.getenv("WAREHOUSE_PROJECT_ID")
        if project_id:
            data = {**data, "project_id": project_id}
        return data
