from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_class_editor, get_class_repository
from app.core.config import get_settings
from app.core.exceptions import ResourceNotFoundError
from app.schemas.class_offering import (
    ClassDraft,
    ClassOut,
    ClassPage,
    ClassPatch,
    EnrollmentCheckOut,
    EnrollmentCheckRequest,
    EnrollRequest,
    ScheduleCheckRequest,
)
from app.schemas.schedule import ValidationFailure, ValidResult
from app.services.class_editor import ClassEditSession
from app.services.class_repository import SqlClassRepository
from app.services.schedule_validator import validate_schedule

router = APIRouter()

settings = get_settings()


@router.get("/", response_model=ClassPage)
def list_classes(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    search: str = Query(default="", max_length=200),
    repository: SqlClassRepository = Depends(get_class_repository),
) -> ClassPage:
    result = repository.list(page, per_page, search)
    return ClassPage(
        data=[ClassOut.model_validate(row) for row in result.data],
        current_page=result.current_page,
        last_page=result.last_page,
        per_page=result.per_page,
        total=result.total,
    )


@router.post("/schedule/validate", response_model=ValidResult | ValidationFailure)
def check_schedule(payload: ScheduleCheckRequest) -> ValidResult | ValidationFailure:
    return validate_schedule(payload.schedules)


@router.post("/enrollment/check", response_model=EnrollmentCheckOut)
def check_enrollment(
    payload: EnrollmentCheckRequest,
    editor: ClassEditSession = Depends(get_class_editor),
) -> EnrollmentCheckOut:
    decision = editor.check_enrollment(payload)
    return EnrollmentCheckOut(
        ok=decision.ok,
        reason=decision.reason,
        blocking_subject_name=decision.blocking_subject_name,
        blocking_class_id=decision.blocking_class_id,
    )


@router.get("/{class_id}", response_model=ClassOut)
def get_class(class_id: int, repository: SqlClassRepository = Depends(get_class_repository)) -> ClassOut:
    offering = repository.get(class_id)
    if offering is None:
        raise ResourceNotFoundError("Class", class_id)
    return offering


@router.post("/", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
def create_class(payload: ClassDraft, editor: ClassEditSession = Depends(get_class_editor)) -> ClassOut:
    return editor.create(payload).class_offering


@router.put("/{class_id}", response_model=ClassOut)
def update_class(
    class_id: int,
    payload: ClassPatch,
    editor: ClassEditSession = Depends(get_class_editor),
) -> ClassOut:
    return editor.update(class_id, payload).class_offering


@router.delete("/{class_id}")
def delete_class(class_id: int, editor: ClassEditSession = Depends(get_class_editor)) -> dict:
    editor.delete(class_id)
    return {"success": True}


@router.post("/{class_id}/enroll", response_model=ClassOut)
def enroll_student(
    class_id: int,
    payload: EnrollRequest,
    editor: ClassEditSession = Depends(get_class_editor),
) -> ClassOut:
    return editor.enroll(class_id, payload.student_id).class_offering


@router.delete("/{class_id}/unenroll/{student_id}", response_model=ClassOut)
def unenroll_student(
    class_id: int,
    student_id: int,
    editor: ClassEditSession = Depends(get_class_editor),
) -> ClassOut:
    return editor.unenroll(class_id, student_id).class_offering
