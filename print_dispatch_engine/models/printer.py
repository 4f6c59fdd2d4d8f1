"""
Printer device models for the Print Dispatch Engine

Defines printer devices, their self-reported health, consumable levels and
the dispatcher-owned occupancy marker.
"""

from enum import Enum
from datetime import datetime
from typing import Optional, Dict, Any
from dataclasses import dataclass, field, replace

from ..core.exceptions import ValidationError


DEFAULT_CONSUMABLE_THRESHOLD = 10.0


class PrinterHealth(Enum):
    """Printer health as reported by the device (or forced by the engine on failure)."""
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"
    ERROR = "error"


class ConnectionType(Enum):
    """How the printer is attached. Informational only."""
    NETWORK = "network"
    USB = "usb"
    BLUETOOTH = "bluetooth"
    SYSTEM = "system"


def _check_level(field_name: str, value: float) -> float:
    if value is None or not 0 <= value <= 100:
        raise ValidationError(field_name, "must be a percentage between 0 and 100", value)
    return float(value)


@dataclass(frozen=True)
class Consumables:
    """Paper and ink levels as percentages in [0, 100]."""

    paper_level: float = 100.0
    ink_level: float = 100.0

    def __post_init__(self):
        object.__setattr__(self, "paper_level", _check_level("paper_level", self.paper_level))
        object.__setattr__(self, "ink_level", _check_level("ink_level", self.ink_level))

    def above(self, threshold: float) -> bool:
        """Both levels strictly exceed the threshold."""
        return self.paper_level > threshold and self.ink_level > threshold

    def to_dict(self) -> Dict[str, Any]:
        return {"paper_level": self.paper_level, "ink_level": self.ink_level}


@dataclass
class PrinterDevice:
    """Printer fleet member."""

    # Primary identification
    printer_id: str
    name: str
    connection_type: ConnectionType = ConnectionType.NETWORK

    # Live state
    health: PrinterHealth = PrinterHealth.ONLINE
    consumables: Consumables = field(default_factory=Consumables)

    # Lower value is preferred
    priority: int = 100
    location: Optional[str] = None

    # Dispatcher-owned occupancy; distinct from self-reported health
    current_job_id: Optional[str] = None

    last_seen_at: datetime = field(default_factory=datetime.utcnow)

    def copy(self) -> "PrinterDevice":
        """Return a detached snapshot of this printer."""
        return replace(self)

    @property
    def is_occupied(self) -> bool:
        return self.current_job_id is not None

    def is_eligible(self, threshold: float = DEFAULT_CONSUMABLE_THRESHOLD) -> bool:
        """Online, unoccupied and above the consumable threshold."""
        return (
            self.health == PrinterHealth.ONLINE
            and self.current_job_id is None
            and self.consumables.above(threshold)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert printer to dictionary."""
        return {
            "printer_id": self.printer_id,
            "name": self.name,
            "connection_type": self.connection_type.value,
            "health": self.health.value,
            "paper_level": self.consumables.paper_level,
            "ink_level": self.consumables.ink_level,
            "priority": self.priority,
            "location": self.location,
            "current_job_id": self.current_job_id,
            "last_seen_at": self.last_seen_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrinterDevice":
        """Create a printer from a flat dictionary (config files, discovery payloads)."""
        try:
            printer_id = data["printer_id"] if "printer_id" in data else data["id"]
        except KeyError:
            raise ValidationError("printer_id", "is required")

        return cls(
            printer_id=str(printer_id),
            name=data.get("name", str(printer_id)),
            connection_type=ConnectionType(data.get("connection_type", ConnectionType.NETWORK.value)),
            health=PrinterHealth(data.get("health", PrinterHealth.ONLINE.value)),
            consumables=Consumables(
                paper_level=data.get("paper_level", 100.0),
                ink_level=data.get("ink_level", 100.0)
            ),
            priority=int(data.get("priority", 100)),
            location=data.get("location")
        )
