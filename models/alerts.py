"""Dataclasses for alert candidates, records, dispatch outcomes and mute state."""
from dataclasses import dataclass, field
from typing import Optional

from models.enums import Severity, SuppressedBy
from utils.constants import now_ms


@dataclass
class AlertCandidate:
    category: Optional[str] = None
    severity: Severity = Severity.INFO
    title: str = ""
    body: str = ""
    timestamp: int = field(default_factory=now_ms)
    threshold: Optional[float] = None
    value: Optional[float] = None

    @property
    def dedup_key(self):
        """Threshold alerts dedupe on (category, threshold); everything else on (severity, body)."""
        if self.threshold is not None:
            return (self.category, self.threshold)
        return (Severity(self.severity).value, self.body)

    @property
    def mute_key(self):
        return self.category or Severity(self.severity).value

    def to_record(self, timestamp=None):
        return AlertRecord(
            timestamp=timestamp if timestamp is not None else self.timestamp,
            title=self.title,
            message=self.body,
            severity=Severity(self.severity).value,
            category=self.category,
        )


@dataclass
class AlertRecord:
    id: Optional[int] = None
    timestamp: int = field(default_factory=now_ms)
    title: str = ""
    message: str = ""
    severity: str = "info"
    category: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        d = dict(row)
        return cls(
            id=d.get("id"),
            timestamp=d.get("timestamp"),
            title=d.get("title") or "",
            message=d.get("message") or "",
            severity=d.get("severity") or "info",
            category=d.get("category"),
        )


@dataclass(frozen=True)
class DispatchOutcome:
    sent: bool
    suppressed_by: SuppressedBy = SuppressedBy.NONE


@dataclass
class MuteState:
    is_muted: bool = False
    mute_until: Optional[int] = None

    def active(self, now):
        return self.is_muted and self.mute_until is not None and now < self.mute_until

    def to_dict(self):
        return {"is_muted": self.is_muted, "mute_until": self.mute_until}

    @classmethod
    def from_dict(cls, d):
        d = d or {}
        return cls(is_muted=bool(d.get("is_muted", False)), mute_until=d.get("mute_until"))
