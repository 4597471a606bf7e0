"""Load run configuration from YAML files."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from snippet_check.models.config import RunConfig


def load_run_config(path: Path) -> RunConfig:
    """Load and validate a run configuration file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated run configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is malformed, empty, or fails validation

    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {path}")

    if not isinstance(data, dict):
        raise ValueError(f"Invalid configuration schema in {path}: expected a mapping")

    try:
        return RunConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration schema in {path}: {e}") from e
