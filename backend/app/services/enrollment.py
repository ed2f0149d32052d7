from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from app.core.exceptions import EnrollmentConflictError
from app.services.roster_overlay import RosterOverlay

logger = logging.getLogger(__name__)

DUPLICATE_SUBJECT_ENROLLMENT = "DuplicateSubjectEnrollment"


@dataclass(frozen=True)
class ClassMembership:
    """The slice of a class the enrollment rule needs: its subject and roster."""

    class_id: int
    subject_id: int
    subject_code: str
    subject_name: str
    student_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def subject_label(self) -> str:
        return f"{self.subject_code} - {self.subject_name}"


@dataclass(frozen=True)
class EnrollmentDecision:
    ok: bool
    student_id: int
    reason: str | None = None
    blocking_subject_name: str | None = None
    blocking_class_id: int | None = None
    kind: str | None = None

    def as_details(self) -> dict:
        return {
            "kind": self.kind,
            "student_id": self.student_id,
            "blocking_subject_name": self.blocking_subject_name,
            "blocking_class_id": self.blocking_class_id,
        }


def can_enroll(
    overlay: RosterOverlay,
    other_classes: Iterable[ClassMembership],
    target_subject_id: int,
    student_id: int,
    *,
    target_subject_label: str | None = None,
) -> EnrollmentDecision:
    """Decide whether ``student_id`` may join the class edited through ``overlay``.

    A student takes each subject at most once. The student's subjects are
    collected from every other class listing them, plus the edited class's own
    subject while the overlay still holds the student, so removals made earlier
    in the same session count. Re-adding a committed member is never a conflict.

    ``target_subject_label`` names the edited class's subject when the only
    conflict is a second pending addition to that class.
    """
    blocking: ClassMembership | None = None
    subjects: set[int] = set()
    for membership in other_classes:
        if overlay.class_id is not None and membership.class_id == overlay.class_id:
            continue
        if student_id not in membership.student_ids:
            continue
        subjects.add(membership.subject_id)
        if membership.subject_id == target_subject_id and blocking is None:
            blocking = membership

    pending_here = student_id in overlay.current_members()
    if pending_here:
        subjects.add(target_subject_id)

    if target_subject_id not in subjects or overlay.is_committed(student_id):
        return EnrollmentDecision(ok=True, student_id=student_id)

    if blocking is not None:
        reason = (
            f"Student {student_id} is already enrolled in {blocking.subject_label} "
            f"(class #{blocking.class_id})"
        )
        return EnrollmentDecision(
            ok=False,
            student_id=student_id,
            reason=reason,
            blocking_subject_name=blocking.subject_label,
            blocking_class_id=blocking.class_id,
            kind=DUPLICATE_SUBJECT_ENROLLMENT,
        )

    subject_label = target_subject_label or f"subject #{target_subject_id}"
    return EnrollmentDecision(
        ok=False,
        student_id=student_id,
        reason=f"Student {student_id} is already pending enrollment in this class ({subject_label})",
        blocking_subject_name=subject_label,
        blocking_class_id=overlay.class_id,
        kind=DUPLICATE_SUBJECT_ENROLLMENT,
    )


class EnrollmentConflictChecker:
    """Runs :func:`can_enroll` for one edited class against the rest of the catalogue."""

    def __init__(
        self,
        other_classes: Iterable[ClassMembership],
        target_subject_id: int,
        *,
        target_subject_label: str | None = None,
    ) -> None:
        self.other_classes = list(other_classes)
        self.target_subject_id = target_subject_id
        self.target_subject_label = target_subject_label

    def check(self, overlay: RosterOverlay, student_id: int) -> EnrollmentDecision:
        return can_enroll(
            overlay,
            self.other_classes,
            self.target_subject_id,
            student_id,
            target_subject_label=self.target_subject_label,
        )

    def enroll(self, overlay: RosterOverlay, student_id: int) -> EnrollmentDecision:
        """Check, then record the addition in the overlay; raise when blocked."""
        decision = self.check(overlay, student_id)
        if not decision.ok:
            logger.info("Enrollment blocked: %s", decision.reason)
            raise EnrollmentConflictError(decision.reason, details=decision.as_details())
        overlay.add(student_id)
        return decision

    def check_all(self, overlay: RosterOverlay, student_ids: Iterable[int]) -> list[EnrollmentDecision]:
        return [self.check(overlay, student_id) for student_id in student_ids]
