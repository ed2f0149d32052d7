from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RosterPatch:
    add: list[int] = field(default_factory=list)
    remove: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.add and not self.remove

    def as_dict(self) -> dict[str, list[int]]:
        return {"add": list(self.add), "remove": list(self.remove)}


class RosterOverlay:
    """Pending roster edits for one class, layered over its committed roster.

    Current members are ``committed + pending adds - pending removes``. Nothing
    here talks to the store; the caller turns :meth:`to_save_patch` into the
    save request. Enrollment rules are not checked here, callers run
    :func:`app.services.enrollment.can_enroll` before :meth:`add`.
    """

    def __init__(self, committed: Iterable[int] = (), *, class_id: int | None = None) -> None:
        self.class_id = class_id
        self._committed: frozenset[int] = frozenset(committed)
        self._pending_add: set[int] = set()
        self._pending_remove: set[int] = set()

    @property
    def committed(self) -> frozenset[int]:
        return self._committed

    def add(self, student_id: int) -> None:
        if student_id in self._pending_remove:
            self._pending_remove.discard(student_id)
            return
        if student_id in self._committed:
            return
        self._pending_add.add(student_id)

    def remove(self, student_id: int) -> None:
        if student_id in self._pending_add:
            self._pending_add.discard(student_id)
            return
        if student_id in self._committed:
            self._pending_remove.add(student_id)

    def current_members(self) -> frozenset[int]:
        return frozenset((self._committed | self._pending_add) - self._pending_remove)

    def is_committed(self, student_id: int) -> bool:
        return student_id in self._committed

    def is_pending(self, student_id: int) -> bool:
        return student_id in self._pending_add or student_id in self._pending_remove

    @property
    def has_changes(self) -> bool:
        return bool(self._pending_add or self._pending_remove)

    def to_save_patch(self) -> RosterPatch:
        return RosterPatch(add=sorted(self._pending_add), remove=sorted(self._pending_remove))

    def discard(self) -> None:
        self._pending_add.clear()
        self._pending_remove.clear()

    def __contains__(self, student_id: int) -> bool:
        return student_id in self.current_members()

    def __repr__(self) -> str:
        return (
            f"RosterOverlay(class_id={self.class_id!r}, committed={len(self._committed)}, "
            f"add={sorted(self._pending_add)}, remove={sorted(self._pending_remove)})"
        )
