"""Configuration loader for index definition files."""

import os
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union

from pydantic import ValidationError

from .schema import IndexConfig, IndicesConfig
from .settings import get_settings
from ..exceptions import ConfigurationError
from ..utils.logging import get_logger


class ConfigLoader:
    """Loads and validates index definitions from files or dictionaries."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> IndicesConfig:
        """Load index definitions from a JSON or YAML file.

        Args:
            file_path: Path to configuration file

        Returns:
            Validated IndicesConfig object

        Raises:
            ConfigurationError: If file cannot be loaded or validated
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading index configuration", file_path=str(file_path))

        suffix = file_path.suffix.lower()
        if suffix not in ('.yaml', '.yml', '.json'):
            raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if suffix == '.json':
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}")

        return self.load_from_dict(data or {})

    def load_from_dict(self, data: Dict[str, Any]) -> IndicesConfig:
        """Load index definitions from a dictionary."""
        try:
            config = IndicesConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid index configuration: {e}")

        self.logger.info("Index configuration loaded", indices_count=len(config.indices))
        return config


def resolve_index_config(
    indices: IndicesConfig,
    index_name: str,
    engine_override: Optional[str] = None
) -> IndexConfig:
    """Resolve the effective configuration of an index for one sync session.

    The deployment engine-name override, when set, takes precedence over the
    static name from the index definition.
    """
    index_config = indices.get_index(index_name)
    if index_config is None:
        raise ConfigurationError("Unknown index", index=index_name)

    if engine_override is None:
        engine_override = get_settings().swiftype.engine_name

    return index_config.with_engine_name(engine_override)


def load_indices_from_env() -> IndicesConfig:
    """Load index definitions from the environment or default file locations.

    Looks for configuration files in this order:
    1. INDEXSYNC_CONFIG_FILE environment variable
    2. ./config/indices.yaml
    3. ./config/indices.yml
    4. ./config/indices.json
    5. ./indices.yaml
    6. ./indices.json
    """
    loader = ConfigLoader()
    logger = get_logger("load_indices_from_env")

    config_file = os.getenv('INDEXSYNC_CONFIG_FILE')
    if config_file:
        if os.path.exists(config_file):
            return loader.load_from_file(config_file)
        logger.warning("Specified config file not found", file=config_file)

    possible_files = [
        './config/indices.yaml',
        './config/indices.yml',
        './config/indices.json',
        './indices.yaml',
        './indices.json'
    ]

    for file_path in possible_files:
        if os.path.exists(file_path):
            logger.info("Found configuration file", file=file_path)
            return loader.load_from_file(file_path)

    raise ConfigurationError("No index configuration file found")
