"""Class store behind the scheduling core.

Writes only flush; committing belongs to :class:`SaveTransaction`. Problems
with the referenced records come back as a field-error mapping rather than an
exception so callers can show them next to the form fields.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
import math
from typing import Generic, Protocol, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import ResourceNotFoundError
from app.models.class_offering import ClassOffering, ClassSchedule, class_students
from app.models.department import Department
from app.models.section import Section
from app.models.subject import Subject
from app.models.user import User, UserRole
from app.schemas.schedule import ScheduleEntry
from app.services.department_scope import DepartmentScope
from app.services.enrollment import ClassMembership
from app.services.roster_overlay import RosterPatch

T = TypeVar("T")

FieldErrors = dict[str, list[str]]

SELECTION_FIELDS = ("department_id", "subject_id", "section_id", "teacher_id")


@dataclass
class Page(Generic[T]):
    data: list[T]
    current_page: int
    last_page: int
    per_page: int
    total: int


@dataclass
class ClassDraftData:
    department_id: int
    subject_id: int
    teacher_id: int
    section_id: int | None
    schedules: list[ScheduleEntry]
    student_ids: list[int] = field(default_factory=list)


@dataclass
class ClassPatchData:
    fields: dict[str, int | None] = field(default_factory=dict)
    schedules: list[ScheduleEntry] | None = None
    roster: RosterPatch | None = None


class ClassRepository(Protocol):
    def list(self, page: int, per_page: int, search: str = "") -> Page[ClassOffering]: ...

    def get(self, class_id: int) -> ClassOffering | None: ...

    def create(self, draft: ClassDraftData) -> ClassOffering | FieldErrors: ...

    def update(self, class_id: int, patch: ClassPatchData) -> ClassOffering | FieldErrors: ...

    def delete(self, class_id: int) -> None: ...

    def memberships(
        self, *, student_ids: Iterable[int] | None = None, exclude_class_id: int | None = None
    ) -> list[ClassMembership]: ...


def _add_error(errors: FieldErrors, name: str, message: str) -> None:
    errors.setdefault(name, []).append(message)


class SqlClassRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _base_query(self):
        return select(ClassOffering).options(
            selectinload(ClassOffering.subject),
            selectinload(ClassOffering.teacher),
            selectinload(ClassOffering.section),
            selectinload(ClassOffering.department),
            selectinload(ClassOffering.schedules),
            selectinload(ClassOffering.students),
        )

    def list(self, page: int, per_page: int, search: str = "") -> Page[ClassOffering]:
        page = max(1, page)
        per_page = max(1, per_page)
        filters = []
        term = search.strip()
        if term:
            pattern = f"%{term.lower()}%"
            filters.append(
                or_(
                    func.lower(Subject.code).like(pattern),
                    func.lower(Subject.name).like(pattern),
                    func.lower(User.name).like(pattern),
                    func.lower(Section.name).like(pattern),
                )
            )

        id_query = (
            select(ClassOffering.id)
            .join(Subject, Subject.id == ClassOffering.subject_id)
            .join(User, User.id == ClassOffering.teacher_id)
            .outerjoin(Section, Section.id == ClassOffering.section_id)
            .where(*filters)
        )
        total = self.db.execute(select(func.count()).select_from(id_query.subquery())).scalar_one()
        last_page = max(1, math.ceil(total / per_page))

        page_ids = list(
            self.db.execute(
                id_query.order_by(ClassOffering.id.asc()).offset((page - 1) * per_page).limit(per_page)
            ).scalars()
        )
        rows: list[ClassOffering] = []
        if page_ids:
            rows = list(
                self.db.execute(
                    self._base_query().where(ClassOffering.id.in_(page_ids)).order_by(ClassOffering.id.asc())
                ).scalars()
            )
        return Page(data=rows, current_page=page, last_page=last_page, per_page=per_page, total=total)

    def get(self, class_id: int) -> ClassOffering | None:
        return self.db.execute(self._base_query().where(ClassOffering.id == class_id)).scalar_one_or_none()

    def reference_errors(
        self,
        selection: dict[str, int | None],
        student_ids: Iterable[int] = (),
    ) -> FieldErrors:
        errors: FieldErrors = {}
        department_id = selection.get("department_id")
        if department_id is not None and self.db.get(Department, department_id) is None:
            _add_error(errors, "department_id", f"Department {department_id} does not exist")

        subject_id = selection.get("subject_id")
        if subject_id is not None and self.db.get(Subject, subject_id) is None:
            _add_error(errors, "subject_id", f"Subject {subject_id} does not exist")

        section_id = selection.get("section_id")
        if section_id is not None and self.db.get(Section, section_id) is None:
            _add_error(errors, "section_id", f"Section {section_id} does not exist")

        teacher_id = selection.get("teacher_id")
        if teacher_id is not None:
            teacher = self.db.get(User, teacher_id)
            if teacher is None:
                _add_error(errors, "teacher_id", f"Teacher {teacher_id} does not exist")
            elif teacher.role != UserRole.instructor:
                _add_error(errors, "teacher_id", f"User {teacher_id} is not an instructor")

        wanted = set(student_ids)
        if wanted:
            found = dict(
                self.db.execute(select(User.id, User.role).where(User.id.in_(wanted))).all()
            )
            for student_id in sorted(wanted):
                role = found.get(student_id)
                if role is None:
                    _add_error(errors, "student_ids", f"Student {student_id} does not exist")
                elif role != UserRole.student:
                    _add_error(errors, "student_ids", f"User {student_id} is not a student")
        return errors

    def subject_label(self, subject_id: int) -> str | None:
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            return None
        return f"{subject.code} - {subject.name}"

    def department_scope(self, department_id: int) -> DepartmentScope:
        subjects = self.db.execute(
            select(Subject).where(Subject.department_id == department_id).order_by(Subject.code.asc())
        ).scalars()
        sections = self.db.execute(
            select(Section).where(Section.department_id == department_id).order_by(Section.name.asc())
        ).scalars()
        teachers = self.db.execute(
            select(User)
            .where(User.department_id == department_id, User.role == UserRole.instructor)
            .order_by(User.name.asc())
        ).scalars()
        return DepartmentScope(subjects=list(subjects), sections=list(sections), teachers=list(teachers))

    def _students(self, student_ids: Iterable[int]) -> list[User]:
        wanted = list(dict.fromkeys(student_ids))
        if not wanted:
            return []
        rows = self.db.execute(select(User).where(User.id.in_(wanted))).scalars()
        by_id = {row.id: row for row in rows}
        return [by_id[student_id] for student_id in wanted if student_id in by_id]

    @staticmethod
    def _schedule_rows(entries: list[ScheduleEntry]) -> list[ClassSchedule]:
        return [
            ClassSchedule(
                day_of_week=entry.day_of_week,
                start_time=entry.start_time,
                end_time=entry.end_time,
                room=entry.room,
                position=position,
            )
            for position, entry in enumerate(entries)
        ]

    def create(self, draft: ClassDraftData) -> ClassOffering | FieldErrors:
        errors = self.reference_errors(
            {
                "department_id": draft.department_id,
                "subject_id": draft.subject_id,
                "section_id": draft.section_id,
                "teacher_id": draft.teacher_id,
            },
            draft.student_ids,
        )
        if errors:
            return errors

        offering = ClassOffering(
            department_id=draft.department_id,
            subject_id=draft.subject_id,
            teacher_id=draft.teacher_id,
            section_id=draft.section_id,
        )
        offering.schedules = self._schedule_rows(draft.schedules)
        offering.students = self._students(draft.student_ids)
        self.db.add(offering)
        self.db.flush()
        return offering

    def update(self, class_id: int, patch: ClassPatchData) -> ClassOffering | FieldErrors:
        offering = self.get(class_id)
        if offering is None:
            raise ResourceNotFoundError("Class", class_id)

        added = patch.roster.add if patch.roster is not None else []
        errors = self.reference_errors(patch.fields, added)
        if errors:
            return errors

        for key, value in patch.fields.items():
            if key not in SELECTION_FIELDS:
                raise ValueError(f"Unknown class field: {key}")
            setattr(offering, key, value)
        if patch.schedules is not None:
            offering.schedules = self._schedule_rows(patch.schedules)
        if patch.roster is not None and not patch.roster.is_empty:
            removed = set(patch.roster.remove)
            kept = [student for student in offering.students if student.id not in removed]
            current = {student.id for student in kept}
            kept.extend(student for student in self._students(added) if student.id not in current)
            offering.students = kept
        self.db.flush()
        return offering

    def delete(self, class_id: int) -> None:
        offering = self.db.get(ClassOffering, class_id)
        if offering is None:
            raise ResourceNotFoundError("Class", class_id)
        self.db.delete(offering)
        self.db.flush()

    def memberships(
        self, *, student_ids: Iterable[int] | None = None, exclude_class_id: int | None = None
    ) -> list[ClassMembership]:
        query = (
            select(
                ClassOffering.id,
                Subject.id,
                Subject.code,
                Subject.name,
                class_students.c.student_id,
            )
            .join(Subject, Subject.id == ClassOffering.subject_id)
            .join(class_students, class_students.c.class_id == ClassOffering.id)
        )
        if exclude_class_id is not None:
            query = query.where(ClassOffering.id != exclude_class_id)
        if student_ids is not None:
            wanted = set(student_ids)
            if not wanted:
                return []
            query = query.where(class_students.c.student_id.in_(wanted))

        subjects: dict[int, tuple[int, str, str]] = {}
        rosters: dict[int, set[int]] = defaultdict(set)
        for class_id, subject_id, code, name, student_id in self.db.execute(query).all():
            subjects[class_id] = (subject_id, code, name)
            rosters[class_id].add(student_id)
        return [
            ClassMembership(
                class_id=class_id,
                subject_id=subject_id,
                subject_code=code,
                subject_name=name,
                student_ids=frozenset(rosters[class_id]),
            )
            for class_id, (subject_id, code, name) in sorted(subjects.items())
        ]
