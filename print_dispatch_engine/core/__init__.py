"""
Core package for the Print Dispatch Engine

Contains the engine facade, configuration and the error hierarchy.
"""

from .exceptions import (
    PrintDispatchError,
    JobNotFoundError,
    PrinterNotFoundError,
    JobSubmissionError,
    InvalidTransitionError,
    PrinterOccupiedError,
    ConfigurationError,
    ValidationError,
    ExecutorError,
    DispatchError,
    error_registry
)
from .config import DispatchConfig, SimulationConfig, FleetConfig, load_config
from .engine import DispatchEngine

__all__ = [
    "DispatchEngine",
    "DispatchConfig",
    "SimulationConfig",
    "FleetConfig",
    "load_config",
    "PrintDispatchError",
    "JobNotFoundError",
    "PrinterNotFoundError",
    "JobSubmissionError",
    "InvalidTransitionError",
    "PrinterOccupiedError",
    "ConfigurationError",
    "ValidationError",
    "ExecutorError",
    "DispatchError",
    "error_registry"
]
