import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import FieldValidationError, RepositoryError
from app.models.department import Department
from app.services.save_transaction import SaveTransaction, TransactionState


def test_successful_write_is_committed(db_session):
    transaction = SaveTransaction(db_session, label="create department")

    def write(db):
        department = Department(name="Computer Science", code="CS")
        db.add(department)
        db.flush()
        return department

    department = transaction.run(write)

    assert transaction.state is TransactionState.applied
    assert transaction.applied and not transaction.rolled_back
    assert transaction.result is department
    assert db_session.execute(select(Department.code)).scalars().all() == ["CS"]


def test_database_failure_rolls_back_and_surfaces_error(db_session):
    db_session.add(Department(name="Computer Science", code="CS"))
    db_session.commit()
    transaction = SaveTransaction(db_session, label="create department")

    def write(db):
        db.add(Department(name="Another", code="CS"))
        db.flush()

    with pytest.raises(RepositoryError) as exc_info:
        transaction.run(write)

    assert transaction.state is TransactionState.rolled_back
    assert isinstance(transaction.error, IntegrityError)
    assert "Could not create department" in exc_info.value.message
    assert db_session.execute(select(Department.name)).scalars().all() == ["Computer Science"]


def test_application_errors_roll_back_unchanged(db_session):
    transaction = SaveTransaction(db_session)

    def write(db):
        db.add(Department(name="Mathematics", code="MATH"))
        db.flush()
        raise FieldValidationError({"code": ["bad"]})

    with pytest.raises(FieldValidationError):
        transaction.run(write)

    assert transaction.rolled_back
    assert db_session.execute(select(Department)).scalars().all() == []


def test_transaction_leaves_pending_only_once(db_session):
    transaction = SaveTransaction(db_session)
    transaction.run(lambda db: None)

    with pytest.raises(RuntimeError):
        transaction.run(lambda db: None)
    assert transaction.applied
