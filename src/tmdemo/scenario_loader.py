"""Scenario file loading with validation.

File operations enforce a size limit and all content is validated through
the pydantic models before any Azure call is made.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import MAX_SCENARIO_FILE_SIZE_BYTES
from .models import ScenarioSpec

logger = logging.getLogger(__name__)


class ScenarioLoadError(Exception):
    """Raised when scenario loading or validation fails."""

    pass


def load_scenario(scenario_path: Path | None) -> ScenarioSpec:
    """Load and validate a scenario from YAML.

    Args:
        scenario_path: YAML file to load, or None for the built-in defaults.

    Returns:
        Validated scenario.

    Raises:
        ScenarioLoadError: If the file cannot be loaded or fails validation.
    """
    if scenario_path is None:
        logger.debug("No scenario file given, using built-in defaults")
        return ScenarioSpec()

    if not scenario_path.exists():
        raise ScenarioLoadError(f"Scenario file not found: {scenario_path}")

    try:
        file_size = scenario_path.stat().st_size
    except OSError as e:
        raise ScenarioLoadError(f"Failed to stat scenario file {scenario_path}: {e}") from e

    if file_size > MAX_SCENARIO_FILE_SIZE_BYTES:
        raise ScenarioLoadError(
            f"Scenario file exceeds maximum size of {MAX_SCENARIO_FILE_SIZE_BYTES} bytes: "
            f"{scenario_path}"
        )

    try:
        content = scenario_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScenarioLoadError(f"Failed to read scenario file {scenario_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ScenarioLoadError(f"Invalid YAML in {scenario_path}: {e}") from e

    # An empty file means "all defaults"
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        raise ScenarioLoadError(f"Scenario file must contain a YAML mapping: {scenario_path}")

    try:
        scenario = ScenarioSpec.model_validate(raw_data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise ScenarioLoadError(f"Validation failed for {scenario_path}:\n{error_list}") from e

    logger.info(
        "Loaded scenario from %s",
        scenario_path,
        extra={"regions": scenario.regions},
    )
    return scenario


def dump_scenario(scenario: ScenarioSpec) -> str:
    """Render a scenario as YAML using the file's camelCase keys."""
    return yaml.safe_dump(
        scenario.model_dump(mode="json", by_alias=True),
        sort_keys=False,
        default_flow_style=False,
    )
