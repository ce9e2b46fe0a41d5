"""
Request lifecycle data models for timeline orchestration.

This module defines the immutable snapshots published to listeners and the
request descriptions the orchestrators accept.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from ..data.models import ChartOptions, Progress, Subject

T = TypeVar("T")


class RequestState(str, Enum):
    """Lifecycle of one logical fetch request."""
    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass(frozen=True)
class TimelineSnapshot(Generic[T]):
    """What the presentation layer sees at one instant."""

    generation: int
    state: RequestState
    data: tuple[T, ...] = ()
    progress: Progress = field(default_factory=Progress)
    error: Optional[Exception] = None

    @property
    def is_loading(self) -> bool:
        return self.state == RequestState.FETCHING

    def with_data(self, data: tuple[T, ...], progress: Progress) -> "TimelineSnapshot[T]":
        """Same request with new data and progress."""
        return replace(self, data=data, progress=progress)

    def with_state(self, state: RequestState, error: Optional[Exception] = None) -> "TimelineSnapshot[T]":
        """Same request moved to ``state``."""
        return replace(self, state=state, error=error)


@dataclass(frozen=True)
class TransitRequest:
    """One transit timeline request."""
    subject_id: str
    natal: Subject
    start: date
    end: date
    options: Optional[ChartOptions] = None


@dataclass(frozen=True)
class EphemerisRequest:
    """One ephemeris timeline request."""
    start: Optional[date] = None
    end: Optional[date] = None
    active_points: Optional[tuple[str, ...]] = None
    skip_cache: bool = False

    def describe(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "skip_cache": self.skip_cache,
        }
