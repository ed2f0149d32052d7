from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from typing import ClassVar, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassEvent:
    """Base for class events; each subclass sets ``action``."""

    action: ClassVar[str] = "class.changed"

    class_id: int

    def as_details(self) -> dict:
        return {}


@dataclass(frozen=True)
class ClassCreated(ClassEvent):
    subject_code: str = ""

    action: ClassVar[str] = "class.created"

    def as_details(self) -> dict:
        return {"subject_code": self.subject_code}


@dataclass(frozen=True)
class ClassUpdated(ClassEvent):
    changed_fields: tuple[str, ...] = ()

    action: ClassVar[str] = "class.updated"

    def as_details(self) -> dict:
        return {"changed_fields": list(self.changed_fields)}


@dataclass(frozen=True)
class ClassDeleted(ClassEvent):
    subject_code: str = ""

    action: ClassVar[str] = "class.deleted"

    def as_details(self) -> dict:
        return {"subject_code": self.subject_code}


@dataclass(frozen=True)
class RosterChanged(ClassEvent):
    added: tuple[int, ...] = field(default_factory=tuple)
    removed: tuple[int, ...] = field(default_factory=tuple)

    action: ClassVar[str] = "class.roster_changed"

    def as_details(self) -> dict:
        return {"added": list(self.added), "removed": list(self.removed)}


class ClassEventObserver(Protocol):
    def notify(self, event: ClassEvent) -> None: ...


def publish(observers: Iterable[ClassEventObserver], events: Iterable[ClassEvent]) -> None:
    for event in events:
        for observer in observers:
            observer.notify(event)
        logger.debug("Published %s for class %s", event.action, event.class_id)


class RecordingObserver:
    """Keeps every event it receives; useful for callers that inspect results later."""

    def __init__(self) -> None:
        self.events: list[ClassEvent] = []

    def notify(self, event: ClassEvent) -> None:
        self.events.append(event)
