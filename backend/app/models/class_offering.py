from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.department import Department
from app.models.section import Section
from app.models.subject import Subject
from app.models.user import User


class_students = Table(
    "class_students",
    Base.metadata,
    Column("class_id", ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class ClassOffering(Base):
    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), index=True, nullable=False)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    section_id: Mapped[int | None] = mapped_column(ForeignKey("sections.id"), index=True, nullable=True)
    department_id: Mapped[int] = mapped_column(ForeignKey("departments.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    subject: Mapped[Subject] = relationship()
    teacher: Mapped[User] = relationship(foreign_keys=[teacher_id])
    section: Mapped[Section | None] = relationship()
    department: Mapped[Department] = relationship()
    schedules: Mapped[list["ClassSchedule"]] = relationship(
        back_populates="class_offering",
        cascade="all, delete-orphan",
        order_by="ClassSchedule.position",
    )
    students: Mapped[list[User]] = relationship(secondary=class_students, order_by=User.name)

    @property
    def student_ids(self) -> list[int]:
        return [student.id for student in self.students]


class ClassSchedule(Base):
    __tablename__ = "class_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), index=True, nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    class_offering: Mapped[ClassOffering] = relationship(back_populates="schedules")
