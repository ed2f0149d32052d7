from dataclasses import fields

import pytest

from app.core.exceptions import EnrollmentConflictError, ScheduleRejectedError
from app.models.activity_log import ActivityLog
from app.models.class_offering import ClassOffering
from app.models.department import Department
from app.models.subject import Subject
from app.models.user import User, UserRole
from app.schemas.class_offering import ClassDraft, ClassPatch
from app.services import audit
from app.services.audit import ActivityLogObserver
from app.services.class_editor import ClassEditSession
from app.services.class_events import ClassCreated, ClassDeleted, ClassUpdated, RecordingObserver, RosterChanged


def seed(db):
    department = Department(name="Computer Science", code="CS")
    db.add(department)
    db.flush()
    subject = Subject(code="CS101", name="Intro to Programming", department_id=department.id)
    teacher = User(name="Grace Hopper", email="grace@example.com", role=UserRole.instructor, department_id=department.id)
    students = [
        User(name=f"Student {index}", email=f"student{index}@example.com", role=UserRole.student)
        for index in range(1, 3)
    ]
    db.add_all([subject, teacher, *students])
    db.commit()
    return department, subject, teacher, students


def draft(department, subject, teacher, student_ids=(), schedules=None):
    return ClassDraft(
        department_id=department.id,
        subject_id=subject.id,
        teacher_id=teacher.id,
        schedules=schedules or [{"day_of_week": "1", "start_time": "09:00", "end_time": "10:00"}],
        student_ids=list(student_ids),
    )


def test_create_publishes_events_after_apply(db_session):
    department, subject, teacher, students = seed(db_session)
    observer = RecordingObserver()
    session = ClassEditSession(db_session, observers=[observer])

    outcome = session.create(draft(department, subject, teacher, [students[0].id]))

    assert outcome.transaction.applied
    assert outcome.roster_patch.add == [students[0].id]
    assert observer.events == outcome.events
    created, roster = observer.events
    assert created == ClassCreated(class_id=outcome.class_offering.id, subject_code="CS101")
    assert roster == RosterChanged(class_id=outcome.class_offering.id, added=(students[0].id,))


def test_rejected_schedule_writes_nothing(db_session):
    department, subject, teacher, _ = seed(db_session)
    observer = RecordingObserver()
    session = ClassEditSession(db_session, observers=[observer])

    with pytest.raises(ScheduleRejectedError):
        session.create(
            draft(
                department,
                subject,
                teacher,
                schedules=[
                    {"day_of_week": "1", "start_time": "09:00", "end_time": "10:00"},
                    {"day_of_week": "1", "start_time": "09:00", "end_time": "10:00"},
                ],
            )
        )

    assert db_session.query(ClassOffering).count() == 0
    assert observer.events == []


def test_update_and_delete_emit_typed_events(db_session):
    department, subject, teacher, students = seed(db_session)
    observer = RecordingObserver()
    session = ClassEditSession(db_session, observers=[observer])
    class_id = session.create(draft(department, subject, teacher)).class_offering.id
    observer.events.clear()

    outcome = session.update(
        class_id,
        ClassPatch(
            schedules=[{"day_of_week": "5", "start_time": "14:00", "end_time": "15:30"}],
            roster={"add": [students[1].id, students[0].id]},
        ),
    )
    assert [(row.day_of_week, row.start_time) for row in outcome.class_offering.schedules] == [(5, "14:00")]
    assert observer.events == [
        ClassUpdated(class_id=class_id, changed_fields=("schedules",)),
        RosterChanged(class_id=class_id, added=tuple(sorted([students[0].id, students[1].id]))),
    ]

    session.delete(class_id)
    assert observer.events[-1] == ClassDeleted(class_id=class_id, subject_code="CS101")
    assert observer.events[-1].action == "class.deleted"


def test_repeated_ids_in_one_request_collapse(db_session):
    department, subject, teacher, students = seed(db_session)
    session = ClassEditSession(db_session)
    class_id = session.create(draft(department, subject, teacher)).class_offering.id

    outcome = session.update(class_id, ClassPatch(roster={"add": [students[0].id, students[0].id]}))

    assert outcome.roster_patch.add == [students[0].id]
    assert outcome.class_offering.student_ids == [students[0].id]


def test_second_class_for_same_subject_blocks_enrollment(db_session):
    department, subject, teacher, students = seed(db_session)
    session = ClassEditSession(db_session)
    session.create(draft(department, subject, teacher, [students[0].id]))
    other = session.create(
        draft(
            department,
            subject,
            teacher,
            schedules=[{"day_of_week": "2", "start_time": "09:00", "end_time": "10:00"}],
        )
    ).class_offering

    with pytest.raises(EnrollmentConflictError) as exc_info:
        session.enroll(other.id, students[0].id)

    assert "CS101" in exc_info.value.message
    assert session.enroll(other.id, students[1].id).transaction.applied


def _add_invalid_log_row(db, **_):
    db.add(ActivityLog(action=None, details={}))


def test_failed_activity_log_write_keeps_the_saved_class(db_session, monkeypatch):
    department, subject, teacher, students = seed(db_session)
    monkeypatch.setattr(audit, "log_activity", _add_invalid_log_row)
    session = ClassEditSession(db_session, observers=[ActivityLogObserver(db_session)])

    outcome = session.create(draft(department, subject, teacher, [students[0].id]))

    assert outcome.transaction.applied
    assert [event.action for event in outcome.events] == ["class.created", "class.roster_changed"]
    assert db_session.query(ClassOffering).count() == 1
    assert outcome.class_offering.student_ids == [students[0].id]
    assert db_session.query(ActivityLog).count() == 0


def test_event_actions_are_class_level_names():
    assert ClassCreated.action == "class.created"
    assert ClassUpdated(class_id=1).action == "class.updated"
    assert ClassDeleted(class_id=1).action == "class.deleted"
    assert RosterChanged(class_id=1, added=(2,)).action == "class.roster_changed"
    assert "action" not in {item.name for item in fields(RosterChanged)}
