from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.schedule import CandidateEntry, ScheduleEntry


class RosterPatchIn(BaseModel):
    add: list[int] = Field(default_factory=list, max_length=500)
    remove: list[int] = Field(default_factory=list, max_length=500)


class ClassDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject_id: int | None = None
    department_id: int | None = None
    section_id: int | None = None
    teacher_id: int | None = None
    schedules: list[CandidateEntry] = Field(default_factory=list, max_length=50)
    student_ids: list[int] = Field(default_factory=list, alias="studentIds", max_length=500)


class ClassPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject_id: int | None = None
    department_id: int | None = None
    section_id: int | None = None
    teacher_id: int | None = None
    schedules: list[CandidateEntry] | None = Field(default=None, max_length=50)
    student_ids: list[int] | None = Field(default=None, alias="studentIds", max_length=500)
    roster: RosterPatchIn | None = None

    @model_validator(mode="after")
    def validate_roster_shape(self) -> "ClassPatch":
        if self.student_ids is not None and self.roster is not None:
            raise ValueError("Send either studentIds or roster, not both")
        return self


class SubjectSummary(BaseModel):
    id: int
    code: str
    name: str

    model_config = {"from_attributes": True}


class PersonSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class SectionSummary(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class DepartmentSummary(BaseModel):
    id: int
    code: str
    name: str

    model_config = {"from_attributes": True}


class ClassOut(BaseModel):
    id: int
    department_id: int
    subject: SubjectSummary
    teacher: PersonSummary
    section: SectionSummary | None
    department: DepartmentSummary
    schedules: list[ScheduleEntry]
    students: list[PersonSummary]

    model_config = {"from_attributes": True}


class ClassPage(BaseModel):
    data: list[ClassOut]
    current_page: int
    last_page: int
    per_page: int
    total: int


class ScheduleCheckRequest(BaseModel):
    schedules: list[CandidateEntry] = Field(default_factory=list, max_length=50)


class EnrollRequest(BaseModel):
    student_id: int


class EnrollmentCheckRequest(BaseModel):
    class_id: int | None = None
    subject_id: int | None = None
    student_id: int
    add: list[int] = Field(default_factory=list, max_length=500)
    remove: list[int] = Field(default_factory=list, max_length=500)

    @model_validator(mode="after")
    def validate_target(self) -> "EnrollmentCheckRequest":
        if self.class_id is None and self.subject_id is None:
            raise ValueError("Either class_id or subject_id is required")
        return self


class EnrollmentCheckOut(BaseModel):
    ok: bool
    reason: str | None = None
    blocking_subject_name: str | None = None
    blocking_class_id: int | None = None
