"""Seed a small department with subjects, a section, people and one class.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from app.db.bootstrap import ensure_runtime_schema
from app.db.session import SessionLocal
from app.models.class_offering import ClassOffering
from app.models.department import Department
from app.models.section import Section
from app.models.subject import Subject
from app.models.user import User, UserRole
from app.schemas.class_offering import ClassDraft
from app.services.audit import ActivityLogObserver
from app.services.class_editor import ClassEditSession

logger = logging.getLogger("seed_demo_data")

DEPARTMENT = {"code": "CS", "name": "Computer Science"}
SUBJECTS = [
    {"code": "CS101", "name": "Introduction to Programming", "units": 3},
    {"code": "CS102", "name": "Data Structures", "units": 3},
    {"code": "MATH201", "name": "Discrete Mathematics", "units": 3},
]
SECTION_NAMES = ["BSCS 1-A", "BSCS 1-B"]
INSTRUCTOR = {"name": "Maria Santos", "email": "maria.santos@example.edu"}
STUDENTS = [
    {"name": "Ana Cruz", "email": "ana.cruz@example.edu"},
    {"name": "Ben Reyes", "email": "ben.reyes@example.edu"},
    {"name": "Carla Lim", "email": "carla.lim@example.edu"},
]


def upsert_department(session) -> Department:
    department = session.execute(
        select(Department).where(Department.code == DEPARTMENT["code"])
    ).scalar_one_or_none()
    if department is None:
        department = Department(**DEPARTMENT)
        session.add(department)
        session.flush()
    return department


def upsert_subjects(session, department: Department) -> dict[str, Subject]:
    subjects: dict[str, Subject] = {}
    for item in SUBJECTS:
        subject = session.execute(select(Subject).where(Subject.code == item["code"])).scalar_one_or_none()
        if subject is None:
            subject = Subject(department_id=department.id, **item)
            session.add(subject)
        subjects[item["code"]] = subject
    session.flush()
    return subjects


def upsert_sections(session, department: Department) -> list[Section]:
    sections: list[Section] = []
    for name in SECTION_NAMES:
        section = session.execute(
            select(Section).where(Section.name == name, Section.department_id == department.id)
        ).scalar_one_or_none()
        if section is None:
            section = Section(name=name, department_id=department.id)
            session.add(section)
        sections.append(section)
    session.flush()
    return sections


def upsert_user(session, *, name: str, email: str, role: UserRole, department_id: int) -> User:
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(name=name, email=email, role=role, department_id=department_id)
        session.add(user)
        session.flush()
    return user


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ensure_runtime_schema()
    with SessionLocal() as session:
        department = upsert_department(session)
        subjects = upsert_subjects(session, department)
        sections = upsert_sections(session, department)
        teacher = upsert_user(session, role=UserRole.instructor, department_id=department.id, **INSTRUCTOR)
        students = [
            upsert_user(session, role=UserRole.student, department_id=department.id, **item)
            for item in STUDENTS
        ]
        session.commit()

        existing = session.execute(
            select(ClassOffering).where(ClassOffering.subject_id == subjects["CS101"].id)
        ).first()
        if existing is not None:
            logger.info("Demo class already present, nothing to do")
            return

        editor = ClassEditSession(session, observers=[ActivityLogObserver(session)])
        outcome = editor.create(
            ClassDraft(
                department_id=department.id,
                subject_id=subjects["CS101"].id,
                section_id=sections[0].id,
                teacher_id=teacher.id,
                schedules=[
                    {"day_of_week": "1", "start_time": "09:00", "end_time": "10:30", "room": "Room 204"},
                    {"day_of_week": "3", "start_time": "09:00", "end_time": "10:30", "room": "Room 204"},
                ],
                student_ids=[student.id for student in students],
            )
        )
        logger.info(
            "Seeded class %s with %d student(s)",
            outcome.class_offering.id,
            len(outcome.roster_patch.add),
        )


if __name__ == "__main__":
    main()
