from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import FieldValidationError, ResourceNotFoundError
from app.models.class_offering import ClassOffering
from app.schemas.class_offering import ClassDraft, ClassPatch, EnrollmentCheckRequest
from app.services.class_events import (
    ClassCreated,
    ClassDeleted,
    ClassEvent,
    ClassEventObserver,
    ClassUpdated,
    RosterChanged,
    publish,
)
from app.services.class_repository import (
    ClassDraftData,
    ClassPatchData,
    FieldErrors,
    SELECTION_FIELDS,
    SqlClassRepository,
)
from app.services.department_scope import Selection
from app.services.enrollment import EnrollmentConflictChecker, EnrollmentDecision, can_enroll
from app.services.roster_overlay import RosterOverlay, RosterPatch
from app.services.save_transaction import SaveTransaction
from app.services.schedule_validator import ScheduleValidator

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("department_id", "subject_id", "teacher_id")
OUTSIDE_DEPARTMENT = "Selection is outside the chosen department"


@dataclass
class SaveOutcome:
    class_offering: ClassOffering | None
    transaction: SaveTransaction | None
    roster_patch: RosterPatch = field(default_factory=RosterPatch)
    events: list[ClassEvent] = field(default_factory=list)


def _raise_if(errors: FieldErrors) -> None:
    if errors:
        raise FieldValidationError(errors)


class ClassEditSession:
    """Create/edit flow for one class: scope check, schedule check, roster check, one save.

    Nothing reaches the store until every check has passed, and the whole change
    is written in a single :class:`SaveTransaction`. Events are handed to the
    observers given here once the save is applied.
    """

    def __init__(
        self,
        db: Session,
        *,
        repository: SqlClassRepository | None = None,
        observers: Iterable[ClassEventObserver] = (),
        validator: ScheduleValidator | None = None,
    ) -> None:
        self.db = db
        self.repository = repository or SqlClassRepository(db)
        self.observers = list(observers)
        self.validator = validator or ScheduleValidator()

    def _require_class(self, class_id: int) -> ClassOffering:
        offering = self.repository.get(class_id)
        if offering is None:
            raise ResourceNotFoundError("Class", class_id)
        return offering

    def _checked_selection(self, selection: Selection) -> Selection:
        values = {name: getattr(selection, name) for name in SELECTION_FIELDS}
        _raise_if(self.repository.reference_errors(values))

        scoped = selection
        cleared: list[str] = []
        if selection.department_id is not None:
            scope = self.repository.department_scope(selection.department_id)
            scoped, cleared = scope.reconcile(selection)

        errors: FieldErrors = {}
        for name in cleared:
            errors.setdefault(name, []).append(OUTSIDE_DEPARTMENT)
        for name in REQUIRED_FIELDS:
            if getattr(scoped, name) is None and name not in errors:
                errors.setdefault(name, []).append("This field is required")
        _raise_if(errors)
        return scoped

    def _checker(self, subject_id: int, *, exclude_class_id: int | None, student_ids) -> EnrollmentConflictChecker:
        memberships = self.repository.memberships(student_ids=student_ids, exclude_class_id=exclude_class_id)
        return EnrollmentConflictChecker(
            memberships,
            subject_id,
            target_subject_label=self.repository.subject_label(subject_id),
        )

    def _finish(self, events: list[ClassEvent]) -> list[ClassEvent]:
        publish(self.observers, events)
        return events

    def create(self, draft: ClassDraft) -> SaveOutcome:
        selection = self._checked_selection(
            Selection(
                department_id=draft.department_id,
                subject_id=draft.subject_id,
                section_id=draft.section_id,
                teacher_id=draft.teacher_id,
            )
        )
        schedules = self.validator.require_valid(draft.schedules)

        student_ids = list(dict.fromkeys(draft.student_ids))
        _raise_if(self.repository.reference_errors({}, student_ids))
        overlay = RosterOverlay()
        checker = self._checker(selection.subject_id, exclude_class_id=None, student_ids=student_ids)
        for student_id in student_ids:
            checker.enroll(overlay, student_id)
        patch = overlay.to_save_patch()

        data = ClassDraftData(
            department_id=selection.department_id,
            subject_id=selection.subject_id,
            teacher_id=selection.teacher_id,
            section_id=selection.section_id,
            schedules=schedules,
            student_ids=patch.add,
        )
        transaction: SaveTransaction[ClassOffering] = SaveTransaction(self.db, label="create class")
        offering = transaction.run(lambda _db: self._write(self.repository.create(data)))

        events: list[ClassEvent] = [ClassCreated(class_id=offering.id, subject_code=offering.subject.code)]
        if patch.add:
            events.append(RosterChanged(class_id=offering.id, added=tuple(patch.add)))
        logger.info("Created class %s (%s) with %d slot(s)", offering.id, offering.subject.code, len(schedules))
        return SaveOutcome(offering, transaction, patch, self._finish(events))

    @staticmethod
    def _write(result: ClassOffering | FieldErrors) -> ClassOffering:
        if isinstance(result, dict):
            raise FieldValidationError(result)
        return result

    def update(self, class_id: int, patch: ClassPatch) -> SaveOutcome:
        offering = self._require_class(class_id)

        requested = patch.model_dump(include=set(SELECTION_FIELDS), exclude_unset=True)
        current = {name: getattr(offering, name) for name in SELECTION_FIELDS}
        selection = self._checked_selection(Selection(**{**current, **requested}))
        fields = {
            name: getattr(selection, name)
            for name in SELECTION_FIELDS
            if getattr(selection, name) != current[name]
        }

        schedules = None
        if patch.schedules is not None:
            schedules = self.validator.require_valid(patch.schedules)

        overlay = RosterOverlay(offering.student_ids, class_id=class_id)
        additions: list[int] = []
        if patch.student_ids is not None:
            desired = list(dict.fromkeys(patch.student_ids))
            for student_id in overlay.committed - set(desired):
                overlay.remove(student_id)
            additions = [student_id for student_id in desired if not overlay.is_committed(student_id)]
        elif patch.roster is not None:
            for student_id in patch.roster.remove:
                overlay.remove(student_id)
            additions = list(dict.fromkeys(patch.roster.add))

        _raise_if(self.repository.reference_errors({}, additions))
        subject_changed = "subject_id" in fields
        members_to_check = additions
        if subject_changed:
            members_to_check = sorted(overlay.current_members()) + additions
        checker = self._checker(selection.subject_id, exclude_class_id=class_id, student_ids=members_to_check)
        if subject_changed:
            # Current members were never checked against the new subject.
            fresh = RosterOverlay(class_id=class_id)
            for student_id in sorted(overlay.current_members()):
                checker.enroll(fresh, student_id)
        for student_id in additions:
            checker.enroll(overlay, student_id)
        roster_patch = overlay.to_save_patch()

        data = ClassPatchData(fields=fields, schedules=schedules, roster=roster_patch)
        transaction: SaveTransaction[ClassOffering] = SaveTransaction(self.db, label="update class")
        saved = transaction.run(lambda _db: self._write(self.repository.update(class_id, data)))

        changed = sorted(fields) + (["schedules"] if schedules is not None else [])
        events: list[ClassEvent] = []
        if changed:
            events.append(ClassUpdated(class_id=class_id, changed_fields=tuple(changed)))
        if not roster_patch.is_empty:
            events.append(
                RosterChanged(class_id=class_id, added=tuple(roster_patch.add), removed=tuple(roster_patch.remove))
            )
        logger.info("Updated class %s (%s)", class_id, ", ".join(changed) or "roster only")
        return SaveOutcome(saved, transaction, roster_patch, self._finish(events))

    def enroll(self, class_id: int, student_id: int) -> SaveOutcome:
        offering = self._require_class(class_id)
        _raise_if(self.repository.reference_errors({}, [student_id]))
        overlay = RosterOverlay(offering.student_ids, class_id=class_id)
        checker = self._checker(offering.subject_id, exclude_class_id=class_id, student_ids=[student_id])
        checker.enroll(overlay, student_id)
        return self._save_roster(offering, overlay)

    def unenroll(self, class_id: int, student_id: int) -> SaveOutcome:
        offering = self._require_class(class_id)
        overlay = RosterOverlay(offering.student_ids, class_id=class_id)
        if student_id not in overlay:
            raise ResourceNotFoundError("Enrollment", f"{class_id}/{student_id}")
        overlay.remove(student_id)
        return self._save_roster(offering, overlay)

    def _save_roster(self, offering: ClassOffering, overlay: RosterOverlay) -> SaveOutcome:
        roster_patch = overlay.to_save_patch()
        if roster_patch.is_empty:
            return SaveOutcome(offering, None, roster_patch, [])
        data = ClassPatchData(roster=roster_patch)
        transaction: SaveTransaction[ClassOffering] = SaveTransaction(self.db, label="save roster")
        saved = transaction.run(lambda _db: self._write(self.repository.update(offering.id, data)))
        event = RosterChanged(
            class_id=saved.id, added=tuple(roster_patch.add), removed=tuple(roster_patch.remove)
        )
        return SaveOutcome(saved, transaction, roster_patch, self._finish([event]))

    def delete(self, class_id: int) -> SaveOutcome:
        offering = self._require_class(class_id)
        subject_code = offering.subject.code
        transaction: SaveTransaction[None] = SaveTransaction(self.db, label="delete class")
        transaction.run(lambda _db: self.repository.delete(class_id))
        logger.info("Deleted class %s (%s)", class_id, subject_code)
        events: list[ClassEvent] = [ClassDeleted(class_id=class_id, subject_code=subject_code)]
        return SaveOutcome(None, transaction, RosterPatch(), self._finish(events))

    def check_enrollment(self, request: EnrollmentCheckRequest) -> EnrollmentDecision:
        committed: list[int] = []
        subject_id = request.subject_id
        if request.class_id is not None:
            offering = self._require_class(request.class_id)
            committed = offering.student_ids
            if subject_id is None:
                subject_id = offering.subject_id

        overlay = RosterOverlay(committed, class_id=request.class_id)
        for student_id in request.remove:
            overlay.remove(student_id)
        for student_id in request.add:
            overlay.add(student_id)

        memberships = self.repository.memberships(
            student_ids=[request.student_id], exclude_class_id=request.class_id
        )
        return can_enroll(
            overlay,
            memberships,
            subject_id,
            request.student_id,
            target_subject_label=self.repository.subject_label(subject_id),
        )
