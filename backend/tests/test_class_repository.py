from app.models.class_offering import ClassOffering
from app.models.department import Department
from app.models.section import Section
from app.models.subject import Subject
from app.models.user import User, UserRole
from app.schemas.schedule import ScheduleEntry
from app.services.class_repository import ClassDraftData, ClassPatchData, SqlClassRepository
from app.services.roster_overlay import RosterPatch


def seed(db):
    cs = Department(name="Computer Science", code="CS")
    math = Department(name="Mathematics", code="MATH")
    db.add_all([cs, math])
    db.flush()
    subjects = [
        Subject(code="CS101", name="Intro to Programming", department_id=cs.id),
        Subject(code="CS102", name="Data Structures", department_id=cs.id),
        Subject(code="MATH201", name="Linear Algebra", department_id=math.id),
    ]
    section = Section(name="BSCS 1-A", department_id=cs.id)
    teacher = User(name="Grace Hopper", email="grace@example.com", role=UserRole.instructor, department_id=cs.id)
    students = [
        User(name=f"Student {index}", email=f"student{index}@example.com", role=UserRole.student)
        for index in range(1, 4)
    ]
    db.add_all([*subjects, section, teacher, *students])
    db.commit()
    return {
        "cs": cs,
        "math": math,
        "subjects": subjects,
        "section": section,
        "teacher": teacher,
        "students": students,
    }


def slots(*rows):
    return [ScheduleEntry(day_of_week=day, start_time=start, end_time=end) for day, start, end in rows]


def make_class(repository, data, subject, student_ids=()):
    offering = repository.create(
        ClassDraftData(
            department_id=subject.department_id,
            subject_id=subject.id,
            teacher_id=data["teacher"].id,
            section_id=data["section"].id if subject.department_id == data["cs"].id else None,
            schedules=slots((1, "09:00", "10:00")),
            student_ids=list(student_ids),
        )
    )
    assert isinstance(offering, ClassOffering)
    repository.db.commit()
    return offering


def test_list_paginates_and_searches(db_session):
    data = seed(db_session)
    repository = SqlClassRepository(db_session)
    for subject in data["subjects"]:
        make_class(repository, data, subject)

    first = repository.list(page=1, per_page=2)
    assert first.total == 3
    assert first.last_page == 2
    assert [row.subject.code for row in first.data] == ["CS101", "CS102"]

    second = repository.list(page=2, per_page=2)
    assert [row.subject.code for row in second.data] == ["MATH201"]

    assert [row.subject.code for row in repository.list(1, 15, "linear").data] == ["MATH201"]
    assert repository.list(1, 15, "GRACE").total == 3
    assert [row.subject.code for row in repository.list(1, 15, "bscs").data] == ["CS101", "CS102"]
    assert repository.list(1, 15, "nothing matches").data == []


def test_create_reports_field_errors_instead_of_raising(db_session):
    data = seed(db_session)
    repository = SqlClassRepository(db_session)
    student = data["students"][0]

    result = repository.create(
        ClassDraftData(
            department_id=data["cs"].id,
            subject_id=9999,
            teacher_id=student.id,
            section_id=None,
            schedules=slots((1, "09:00", "10:00")),
            student_ids=[data["teacher"].id, 8888],
        )
    )

    assert result == {
        "subject_id": ["Subject 9999 does not exist"],
        "teacher_id": [f"User {student.id} is not an instructor"],
        "student_ids": [f"User {data['teacher'].id} is not a student", "Student 8888 does not exist"],
    }


def test_update_replaces_schedules_and_applies_roster_patch(db_session):
    data = seed(db_session)
    repository = SqlClassRepository(db_session)
    first, second, third = data["students"]
    offering = make_class(repository, data, data["subjects"][0], [first.id, second.id])

    updated = repository.update(
        offering.id,
        ClassPatchData(
            fields={"section_id": None},
            schedules=slots((2, "13:00", "14:00"), (4, "13:00", "14:00")),
            roster=RosterPatch(add=[third.id], remove=[first.id]),
        ),
    )
    db_session.commit()

    reloaded = repository.get(offering.id)
    assert updated.id == reloaded.id
    assert reloaded.section_id is None
    assert [(row.day_of_week, row.start_time) for row in reloaded.schedules] == [(2, "13:00"), (4, "13:00")]
    assert sorted(reloaded.student_ids) == sorted([second.id, third.id])


def test_memberships_exclude_the_edited_class(db_session):
    data = seed(db_session)
    repository = SqlClassRepository(db_session)
    first, second, _ = data["students"]
    cs101 = make_class(repository, data, data["subjects"][0], [first.id])
    math = make_class(repository, data, data["subjects"][2], [first.id, second.id])
    make_class(repository, data, data["subjects"][1])

    memberships = repository.memberships()
    assert [item.class_id for item in memberships] == [cs101.id, math.id]
    assert memberships[1].student_ids == frozenset({first.id, second.id})
    assert memberships[0].subject_label == "CS101 - Intro to Programming"

    filtered = repository.memberships(student_ids=[second.id], exclude_class_id=cs101.id)
    assert [(item.class_id, item.student_ids) for item in filtered] == [(math.id, frozenset({second.id}))]
    assert repository.memberships(student_ids=[]) == []


def test_delete_removes_class_and_rows(db_session):
    data = seed(db_session)
    repository = SqlClassRepository(db_session)
    offering = make_class(repository, data, data["subjects"][0], [data["students"][0].id])

    repository.delete(offering.id)
    db_session.commit()

    assert repository.get(offering.id) is None
    assert repository.memberships() == []
