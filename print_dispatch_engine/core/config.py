"""
Configuration for the Print Dispatch Engine

Settings are validated when they are built, so a bad concurrency limit or
threshold is rejected before any dispatch round runs.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..models.dispatch import DispatchMode
from ..models.job import PrintFile
from ..models.printer import PrinterDevice, DEFAULT_CONSUMABLE_THRESHOLD
from .exceptions import ConfigurationError, PrintDispatchError


def _raise_configuration_error(error: PydanticValidationError, prefix: str = "") -> None:
    first = error.errors()[0]
    key = ".".join(str(part) for part in first.get("loc", ())) or "config"
    if prefix:
        key = f"{prefix}.{key}"
    raise ConfigurationError(key, first.get("msg", str(error))) from error


class DispatchConfig(BaseModel):
    """Dispatch engine settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_concurrent_jobs: int = Field(default=3, gt=0, description="Ceiling on jobs printing at once")
    consumable_threshold: float = Field(
        default=DEFAULT_CONSUMABLE_THRESHOLD, ge=0, le=100,
        description="Paper and ink must both exceed this percentage"
    )
    tick_interval_seconds: float = Field(default=2.0, gt=0, description="Auto mode tick interval")
    mode: DispatchMode = Field(default=DispatchMode.AUTO, description="Initial scheduling mode")
    log_level: str = Field(default="INFO", pattern=r"(?i)^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    structured_logging: bool = True
    notice_history: int = Field(default=100, gt=0, description="Operator notices kept in memory")

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            _raise_configuration_error(e)

    def with_updates(self, **changes: Any) -> "DispatchConfig":
        """Return a validated copy with the given fields replaced."""
        values = self.model_dump()
        values.update(changes)
        return DispatchConfig(**values)


class SimulationConfig(BaseModel):
    """Settings for the simulated print executor used by the CLI."""

    model_config = ConfigDict(extra="forbid")

    seconds_per_file: float = Field(default=1.0, ge=0)
    base_seconds: float = Field(default=0.5, ge=0)


class FleetConfig(BaseModel):
    """A complete configuration file: dispatch settings, printer fleet and seed jobs."""

    model_config = ConfigDict(extra="forbid")

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    printers: List[Dict[str, Any]] = Field(default_factory=list)
    jobs: List[Dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_entries(self) -> "FleetConfig":
        # ConfigurationError is not a ValueError, so pydantic lets it through unchanged
        self.build_printers()
        self.build_job_seeds()
        return self

    def build_printers(self) -> List[PrinterDevice]:
        """Convert printer entries into devices, rejecting malformed ones."""
        devices = []
        seen = set()
        for index, entry in enumerate(self.printers):
            try:
                device = PrinterDevice.from_dict(entry)
            except (PrintDispatchError, ValueError, TypeError) as e:
                raise ConfigurationError(f"printers[{index}]", str(e)) from e
            if device.printer_id in seen:
                raise ConfigurationError(f"printers[{index}]", f"duplicate printer id {device.printer_id}")
            seen.add(device.printer_id)
            devices.append(device)
        return devices

    def build_job_seeds(self) -> List[Dict[str, Any]]:
        """Normalise seed job entries into keyword arguments for JobStore.submit_job."""
        seeds = []
        for index, entry in enumerate(self.jobs):
            if "owner_name" not in entry:
                raise ConfigurationError(f"jobs[{index}].owner_name", "is required")
            try:
                files = [PrintFile.from_dict(f) for f in entry.get("files", [])]
            except (KeyError, TypeError, AttributeError) as e:
                raise ConfigurationError(f"jobs[{index}].files", f"malformed file entry: {e}") from e
            seeds.append({
                "owner_name": entry["owner_name"],
                "files": files,
                "notes": entry.get("notes"),
                "job_id": entry.get("job_id")
            })
        return seeds


def load_config(path: Optional[Union[str, Path]] = None) -> FleetConfig:
    """
    Load a fleet configuration from a YAML file.

    Args:
        path: YAML file path; None returns the defaults

    Returns:
        Validated FleetConfig

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    if path is None:
        return FleetConfig()

    config_path = Path(path)
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigurationError(str(config_path), f"cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(str(config_path), "top level must be a mapping")

    dispatch = DispatchConfig(**(raw.pop("dispatch", None) or {}))
    try:
        return FleetConfig(dispatch=dispatch, **raw)
    except PydanticValidationError as e:
        _raise_configuration_error(e)
