from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_class_repository, get_db
from app.models.department import Department
from app.schemas.catalog import DepartmentCreate, DepartmentOptionsOut, DepartmentOut
from app.services.class_repository import SqlClassRepository

router = APIRouter()


@router.get("/", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)) -> list[DepartmentOut]:
    return list(db.execute(select(Department).order_by(Department.code.asc())).scalars())


@router.post("/", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(payload: DepartmentCreate, db: Session = Depends(get_db)) -> DepartmentOut:
    existing = db.execute(select(Department).where(Department.code == payload.code)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Department code already exists")
    department = Department(**payload.model_dump())
    db.add(department)
    db.commit()
    db.refresh(department)
    return department


@router.get("/{department_id}/options", response_model=DepartmentOptionsOut)
def department_options(
    department_id: int,
    db: Session = Depends(get_db),
    repository: SqlClassRepository = Depends(get_class_repository),
) -> DepartmentOptionsOut:
    if db.get(Department, department_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    options = repository.department_scope(department_id).options_for(department_id)
    return DepartmentOptionsOut.model_validate(options, from_attributes=True)
