"""Unit tests for user-scoped record operations"""

import uuid
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from finboard.domain.exceptions import (
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from finboard.domain.models import CollectionKind, RecordFilter, TransactionType, ValidationPolicy
from finboard.services.records import RecordService

ALICE = "user-alice"
BOB = "user-bob"


def _transaction(**overrides):
    fields = {"amount": 50, "description": "Groceries", "type": "expense", "category": "food"}
    fields.update(overrides)
    return fields


def test_create_then_list_round_trip(service: RecordService):
    """Listed record equals the input plus id and timestamps"""
    created = service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(date="2024-02-01"))

    listed = service.list_records(ALICE, CollectionKind.TRANSACTIONS)

    assert len(listed) == 1
    record = listed[0]
    assert record.id == created.id
    assert record.user_id == ALICE
    assert record.amount == 50
    assert record.description == "Groceries"
    assert record.type == "expense"
    assert record.category == "food"
    assert record.date.replace(tzinfo=None) == datetime(2024, 2, 1)
    assert record.created_at is not None
    assert record.updated_at is not None


def test_list_never_returns_other_users_records(service: RecordService):
    for kind, fields in [
        (CollectionKind.TRANSACTIONS, _transaction()),
        (CollectionKind.SAVINGS, {"name": "Vacation", "targetAmount": 1000}),
        (CollectionKind.BILLS, {"name": "Rent", "dueDate": "2024-03-01", "amount": 900}),
    ]:
        service.create_record(ALICE, kind, fields)
        service.create_record(BOB, kind, fields)

        assert all(r.user_id == ALICE for r in service.list_records(ALICE, kind))
        assert all(r.user_id == BOB for r in service.list_records(BOB, kind))
        assert service.list_records("user-carol", kind) == []


def test_create_for_another_user_is_rejected(service: RecordService):
    with pytest.raises(AuthorizationError):
        service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(userId=BOB))

    assert service.list_records(BOB, CollectionKind.TRANSACTIONS) == []


def test_create_with_matching_user_id_is_accepted(service: RecordService):
    row = service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(userId=ALICE))
    assert row.user_id == ALICE


def test_update_by_non_owner_fails_and_leaves_record_unchanged(service: RecordService, db: Session):
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Vacation", "targetAmount": 1000})

    with pytest.raises(AuthorizationError):
        service.update_record(BOB, CollectionKind.SAVINGS, goal.id, {"currentAmount": 999})

    db.expire_all()
    stored = service.get_record(ALICE, CollectionKind.SAVINGS, goal.id)
    assert stored.current_amount == 0


def test_update_nonexistent_record_is_not_found(service: RecordService):
    with pytest.raises(NotFoundError):
        service.update_record(ALICE, CollectionKind.BILLS, uuid.uuid4(), {"amount": 10})


def test_malformed_record_id_is_not_found(service: RecordService):
    with pytest.raises(NotFoundError):
        service.update_record(ALICE, CollectionKind.BILLS, "not-a-uuid", {"amount": 10})


def test_savings_goal_scenario(service: RecordService):
    """currentAmount starts at 0 and can be raised to the target"""
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Vacation", "targetAmount": 1000})
    assert goal.current_amount == 0

    updated = service.update_record(ALICE, CollectionKind.SAVINGS, goal.id, {"currentAmount": 1000})

    assert updated.current_amount == 1000
    assert updated.target_amount == 1000


def test_update_bumps_updated_at(service: RecordService):
    bill = service.create_record(ALICE, CollectionKind.BILLS, {"name": "Gym", "dueDate": "2024-03-01", "amount": 30})
    created_at, first_update = bill.created_at, bill.updated_at

    updated = service.update_record(ALICE, CollectionKind.BILLS, bill.id, {"isRecurring": False})

    assert updated.is_recurring is False
    assert updated.created_at == created_at
    assert updated.updated_at >= first_update


def test_update_checks_invariants_on_merged_record(db: Session):
    service = RecordService(db, policy=ValidationPolicy(cap_savings_at_target=True))
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Laptop", "targetAmount": 800})

    with pytest.raises(ValidationError):
        service.update_record(ALICE, CollectionKind.SAVINGS, goal.id, {"currentAmount": 900})

    # Raising the target first makes the same amount valid
    service.update_record(ALICE, CollectionKind.SAVINGS, goal.id, {"targetAmount": 1000})
    updated = service.update_record(ALICE, CollectionKind.SAVINGS, goal.id, {"currentAmount": 900})
    assert updated.current_amount == 900


def test_delete_is_owner_only_and_not_repeatable(service: RecordService):
    row = service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction())

    with pytest.raises(AuthorizationError):
        service.delete_record(BOB, CollectionKind.TRANSACTIONS, row.id)

    deleted_id = service.delete_record(ALICE, CollectionKind.TRANSACTIONS, row.id)
    assert deleted_id == str(row.id)

    with pytest.raises(NotFoundError):
        service.delete_record(ALICE, CollectionKind.TRANSACTIONS, deleted_id)


def test_list_orders_newest_created_first_by_default(service: RecordService):
    names = ["first", "second", "third"]
    for name in names:
        service.create_record(ALICE, CollectionKind.SAVINGS, {"name": name, "targetAmount": 100})

    listed = service.list_records(ALICE, CollectionKind.SAVINGS)

    assert [g.name for g in listed] == list(reversed(names))


def test_list_sort_by_date_ascending(service: RecordService):
    for day in (15, 1, 8):
        service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(date=f"2024-01-{day:02d}"))

    listed = service.list_records(ALICE, CollectionKind.TRANSACTIONS, RecordFilter(sort="date"))

    assert [t.date.day for t in listed] == [1, 8, 15]


def test_list_rejects_unknown_sort_field(service: RecordService):
    with pytest.raises(ValidationError) as exc_info:
        service.list_records(ALICE, CollectionKind.BILLS, RecordFilter(sort="-amount"))

    assert exc_info.value.fields == ["sort"]


def test_list_filters_by_date_range_category_and_type(service: RecordService):
    service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(date="2024-01-10"))
    service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(date="2024-02-10"))
    service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(date="2024-02-12", category="rent"))
    service.create_record(
        ALICE, CollectionKind.TRANSACTIONS, _transaction(date="2024-02-14", type="income", category="salary")
    )

    february = RecordFilter(
        start=datetime(2024, 2, 1, tzinfo=timezone.utc),
        end=datetime(2024, 2, 29, tzinfo=timezone.utc),
    )
    assert len(service.list_records(ALICE, CollectionKind.TRANSACTIONS, february)) == 3

    february.category = "food"
    assert len(service.list_records(ALICE, CollectionKind.TRANSACTIONS, february)) == 1

    income = RecordFilter(type=TransactionType.INCOME)
    listed = service.list_records(ALICE, CollectionKind.TRANSACTIONS, income)
    assert [t.category for t in listed] == ["salary"]


def test_list_limit(service: RecordService):
    for i in range(5):
        service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(description=f"t{i}"))

    assert len(service.list_records(ALICE, CollectionKind.TRANSACTIONS, RecordFilter(limit=2))) == 2


def test_category_filter_only_applies_to_transactions(service: RecordService):
    with pytest.raises(ValidationError):
        service.list_records(ALICE, CollectionKind.BILLS, RecordFilter(category="food"))


def test_upcoming_bills_window(service: RecordService):
    now = datetime.now(timezone.utc)
    for name, offset in [("soon", 3), ("later", 30), ("overdue", -2)]:
        service.create_record(
            ALICE,
            CollectionKind.BILLS,
            {"name": name, "dueDate": (now + timedelta(days=offset)).isoformat(), "amount": 20},
        )

    listed = service.list_records(ALICE, CollectionKind.BILLS, RecordFilter(upcoming_days=7))

    assert [b.name for b in listed] == ["soon"]


def test_contribute_increments_current_amount(service: RecordService):
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Car", "targetAmount": 5000})

    service.contribute(ALICE, goal.id, {"amount": 200})
    updated = service.contribute(ALICE, goal.id, {"amount": 50.5})

    assert updated.current_amount == 250.5


def test_contribute_cannot_go_negative(service: RecordService, db: Session):
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Car", "targetAmount": 5000})
    service.contribute(ALICE, goal.id, {"amount": 100})

    with pytest.raises(ValidationError):
        service.contribute(ALICE, goal.id, {"amount": -150})

    db.expire_all()
    assert service.get_record(ALICE, CollectionKind.SAVINGS, goal.id).current_amount == 100


def test_contribute_respects_owner(service: RecordService):
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Car", "targetAmount": 5000})

    with pytest.raises(AuthorizationError):
        service.contribute(BOB, goal.id, {"amount": 100})


def test_summarize_transactions(service: RecordService):
    service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(amount=3000, type="income"))
    service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(amount=1200))
    service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction(amount=300))
    service.create_record(BOB, CollectionKind.TRANSACTIONS, _transaction(amount=999, type="income"))

    summary = service.summarize_transactions(ALICE)

    assert summary.total_income == 3000
    assert summary.total_expenses == 1500
    assert summary.balance == 1500
    assert summary.count == 3


def test_storage_failure_becomes_persistence_error(service: RecordService):
    failure = OperationalError("INSERT", {}, Exception("database is locked"))
    with patch.object(Session, "commit", side_effect=failure):
        with pytest.raises(PersistenceError):
            service.create_record(ALICE, CollectionKind.TRANSACTIONS, _transaction())

    assert service.list_records(ALICE, CollectionKind.TRANSACTIONS) == []


def test_list_returns_every_record_without_limit(service: RecordService):
    """No implicit cap: a user with many records gets all of them back"""
    for i in range(501):
        service.create_record(ALICE, CollectionKind.SAVINGS, {"name": f"goal-{i}", "targetAmount": 100})

    assert len(service.list_records(ALICE, CollectionKind.SAVINGS)) == 501


def test_server_default_limit_is_opt_in(db: Session):
    service = RecordService(db, default_limit=2)
    for i in range(3):
        service.create_record(ALICE, CollectionKind.SAVINGS, {"name": f"goal-{i}", "targetAmount": 100})

    assert len(service.list_records(ALICE, CollectionKind.SAVINGS)) == 2
    assert len(RecordService(db).list_records(ALICE, CollectionKind.SAVINGS)) == 3


def test_equal_timestamps_are_ordered_by_id(service: RecordService, db: Session):
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    goals = [
        service.create_record(ALICE, CollectionKind.SAVINGS, {"name": f"goal-{i}", "targetAmount": 100})
        for i in range(4)
    ]
    for goal in goals:
        goal.created_at = stamp
    db.commit()

    first = [g.id for g in service.list_records(ALICE, CollectionKind.SAVINGS)]
    second = [g.id for g in service.list_records(ALICE, CollectionKind.SAVINGS)]

    assert first == second == sorted((g.id for g in goals), key=lambda u: u.hex)


def test_contribute_checks_owner_before_payload(service: RecordService):
    goal = service.create_record(ALICE, CollectionKind.SAVINGS, {"name": "Car", "targetAmount": 5000})

    with pytest.raises(AuthorizationError):
        service.contribute(BOB, goal.id, {"amount": "lots"})
