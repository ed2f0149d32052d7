from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Generic, Protocol, TypeVar


class DepartmentScoped(Protocol):
    id: int
    department_id: int | None


T = TypeVar("T", bound=DepartmentScoped)


@dataclass(frozen=True)
class DepartmentOptions(Generic[T]):
    department_id: int
    subjects: list[T] = field(default_factory=list)
    sections: list[T] = field(default_factory=list)
    teachers: list[T] = field(default_factory=list)


@dataclass(frozen=True)
class Selection:
    department_id: int | None = None
    subject_id: int | None = None
    section_id: int | None = None
    teacher_id: int | None = None


class DepartmentScope:
    """Keeps subject, section and teacher choices inside the chosen department."""

    def __init__(
        self,
        subjects: Iterable[DepartmentScoped],
        sections: Iterable[DepartmentScoped],
        teachers: Iterable[DepartmentScoped],
    ) -> None:
        self._subjects = list(subjects)
        self._sections = list(sections)
        self._teachers = list(teachers)

    @staticmethod
    def _within(items: Sequence[DepartmentScoped], department_id: int) -> list:
        return [item for item in items if item.department_id == department_id]

    @staticmethod
    def _department_of(items: Sequence[DepartmentScoped], item_id: int) -> int | None:
        for item in items:
            if item.id == item_id:
                return item.department_id
        return None

    def options_for(self, department_id: int) -> DepartmentOptions:
        return DepartmentOptions(
            department_id=department_id,
            subjects=self._within(self._subjects, department_id),
            sections=self._within(self._sections, department_id),
            teachers=self._within(self._teachers, department_id),
        )

    def reconcile(self, selection: Selection) -> tuple[Selection, list[str]]:
        """Clear any choice that does not belong to ``selection.department_id``.

        Returns the cleaned selection and the names of the cleared fields.
        """
        if selection.department_id is None:
            cleared = [
                name
                for name in ("subject_id", "section_id", "teacher_id")
                if getattr(selection, name) is not None
            ]
            return Selection(), cleared

        changes: dict[str, None] = {}
        for name, items in (
            ("subject_id", self._subjects),
            ("section_id", self._sections),
            ("teacher_id", self._teachers),
        ):
            item_id = getattr(selection, name)
            if item_id is None:
                continue
            if self._department_of(items, item_id) != selection.department_id:
                changes[name] = None
        return replace(selection, **changes), sorted(changes)
