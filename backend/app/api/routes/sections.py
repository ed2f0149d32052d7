from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.models.department import Department
from app.models.section import Section
from app.schemas.catalog import SectionCreate, SectionOut

router = APIRouter()


@router.get("/", response_model=list[SectionOut])
def list_sections(
    department_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[SectionOut]:
    query = select(Section).order_by(Section.name.asc())
    if department_id is not None:
        query = query.where(Section.department_id == department_id)
    return list(db.execute(query).scalars())


@router.post("/", response_model=SectionOut, status_code=status.HTTP_201_CREATED)
def create_section(payload: SectionCreate, db: Session = Depends(get_db)) -> SectionOut:
    if db.get(Department, payload.department_id) is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Department not found")
    section = Section(**payload.model_dump())
    db.add(section)
    db.commit()
    db.refresh(section)
    return section
