from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import UserRole


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=20)
    description: str | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Code cannot be empty")
        return code


class DepartmentOut(DepartmentCreate):
    id: int

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    units: int = Field(default=3, ge=0, le=12)
    department_id: int

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Code cannot be empty")
        return code


class SubjectOut(SubjectCreate):
    id: int

    model_config = {"from_attributes": True}


class SectionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    department_id: int


class SectionOut(SectionCreate):
    id: int

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    role: UserRole
    department_id: int | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    department_id: int | None
    is_active: bool

    model_config = {"from_attributes": True}


class DepartmentOptionsOut(BaseModel):
    department_id: int
    subjects: list[SubjectOut]
    sections: list[SectionOut]
    teachers: list[UserOut]
