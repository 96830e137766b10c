from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

import crud.transactions as crud_transactions
from crud.suppliers import create_supplier as crud_create_supplier, delete_supplier as crud_delete_supplier
from database import Base
from exceptions import PersistenceError, SupplierNotFoundError, TransactionNotFoundError, ValidationError
from models.suppliers import Supplier, SupplierCategory
from models.transactions import Transaction, TransactionType
from schemas.suppliers import SupplierCreate
from schemas.transactions import TransactionCreate

from conftest import create_supplier, create_transaction, get_balance


def _expected_balance(db, supplier_id):
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).one()
    total = Decimal(supplier.opening_balance)
    for t in db.query(Transaction).filter(Transaction.supplier_id == supplier_id).all():
        total += t.amount if t.type == TransactionType.CREDIT else -t.amount
    return total


def test_debit_credit_and_delete_scenario(client, admin_headers):
    supplier = create_supplier(client, admin_headers, opening_balance="0")

    debit = create_transaction(client, admin_headers, supplier["id"], "debit", 100)
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("-100")

    create_transaction(client, admin_headers, supplier["id"], "credit", 300)
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("200")

    response = client.delete(f"/transactions/{debit['id']}", headers=admin_headers)
    assert response.status_code == 204
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("300")


def test_create_then_delete_restores_balance_exactly(client, admin_headers):
    supplier = create_supplier(client, admin_headers, opening_balance="500")

    credit = create_transaction(client, admin_headers, supplier["id"], "credit", 50)
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("550")

    assert client.delete(f"/transactions/{credit['id']}", headers=admin_headers).status_code == 204
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("500")


def test_balance_invariant_holds_after_mixed_sequence(client, admin_headers, db_session):
    supplier = create_supplier(client, admin_headers, opening_balance="1000")
    created = []
    for type_, amount in [("debit", 250), ("credit", 75.5), ("debit", 10), ("credit", 400), ("debit", 1200)]:
        created.append(create_transaction(client, admin_headers, supplier["id"], type_, amount))
    for tx in created[1::2]:
        assert client.delete(f"/transactions/{tx['id']}", headers=admin_headers).status_code == 204

    cached = get_balance(client, admin_headers, supplier["id"])
    assert cached == _expected_balance(db_session, supplier["id"])
    assert cached == Decimal("1000") - 250 - 10 - 1200


def test_unknown_supplier_is_rejected_without_side_effects(client, admin_headers, db_session):
    response = client.post(
        "/transactions/",
        json={"supplier_id": 9999, "type": "debit", "amount": "10", "date": "2024-03-01"},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert "9999" in response.json()["detail"]
    assert db_session.query(func.count(Transaction.id)).scalar() == 0


@pytest.mark.parametrize("payload_update", [
    {"amount": "0"},
    {"amount": "-5"},
    {"type": "refund"},
    {"amount": "1.234"},
])
def test_invalid_transaction_payloads_are_rejected(client, admin_headers, db_session, payload_update):
    supplier = create_supplier(client, admin_headers, opening_balance="100")
    payload = {"supplier_id": supplier["id"], "type": "debit", "amount": "10", "date": "2024-03-01"}
    payload.update(payload_update)

    response = client.post("/transactions/", json=payload, headers=admin_headers)

    assert response.status_code == 422
    assert db_session.query(func.count(Transaction.id)).scalar() == 0
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("100")


def test_crud_validation_rejects_non_positive_amount(db_session):
    supplier = crud_create_supplier(db_session, SupplierCreate(name="Direct", category=SupplierCategory.OTHER))
    bad = TransactionCreate.model_construct(
        supplier_id=supplier.id, type=TransactionType.DEBIT, amount=Decimal("0"), description=None, date=date(2024, 1, 1)
    )
    with pytest.raises(ValidationError):
        crud_transactions.create_transaction(db_session, bad)
    assert db_session.query(func.count(Transaction.id)).scalar() == 0


def test_crud_create_raises_for_missing_supplier(db_session):
    with pytest.raises(SupplierNotFoundError):
        crud_transactions.create_transaction(
            db_session,
            TransactionCreate(supplier_id=42, type=TransactionType.CREDIT, amount=Decimal("5"), date=date(2024, 1, 1)),
        )


def test_failed_balance_update_rolls_back_insert(db_session, monkeypatch):
    supplier = crud_create_supplier(db_session, SupplierCreate(name="Atomic", category=SupplierCategory.OTHER))

    def broken_delta(*args, **kwargs):
        raise SQLAlchemyError("connection dropped")

    monkeypatch.setattr(crud_transactions, "apply_balance_delta", broken_delta)
    with pytest.raises(PersistenceError):
        crud_transactions.create_transaction(
            db_session,
            TransactionCreate(supplier_id=supplier.id, type=TransactionType.DEBIT, amount=Decimal("40"), date=date(2024, 1, 1)),
        )

    assert db_session.query(func.count(Transaction.id)).scalar() == 0
    db_session.expire_all()
    assert db_session.get(Supplier, supplier.id).balance == Decimal("0")


def test_persistence_error_maps_to_generic_500(client, admin_headers, monkeypatch):
    supplier = create_supplier(client, admin_headers)

    def broken_delta(*args, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(crud_transactions, "apply_balance_delta", broken_delta)
    response = client.post(
        "/transactions/",
        json={"supplier_id": supplier["id"], "type": "credit", "amount": "10", "date": "2024-03-01"},
        headers=admin_headers,
    )
    assert response.status_code == 500
    assert "disk" not in response.json()["detail"]


def test_delete_missing_transaction_returns_404(client, admin_headers):
    response = client.delete("/transactions/12345", headers=admin_headers)
    assert response.status_code == 404
    assert "12345" in response.json()["detail"]


def test_second_delete_does_not_reverse_twice(client, admin_headers):
    supplier = create_supplier(client, admin_headers, opening_balance="0")
    tx = create_transaction(client, admin_headers, supplier["id"], "debit", 60)

    assert client.delete(f"/transactions/{tx['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/transactions/{tx['id']}", headers=admin_headers).status_code == 404
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("0")


def test_transactions_are_listed_newest_date_first(client, admin_headers):
    supplier = create_supplier(client, admin_headers)
    first = create_transaction(client, admin_headers, supplier["id"], "debit", 1, date="2024-01-10")
    second = create_transaction(client, admin_headers, supplier["id"], "debit", 2, date="2024-02-10")
    same_day = create_transaction(client, admin_headers, supplier["id"], "credit", 3, date="2024-02-10")

    response = client.get("/transactions/", params={"supplier_id": supplier["id"]}, headers=admin_headers)
    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [same_day["id"], second["id"], first["id"]]

    by_supplier = client.get(f"/suppliers/{supplier['id']}/transactions", headers=admin_headers).json()
    assert [t["id"] for t in by_supplier] == [same_day["id"], second["id"], first["id"]]


def test_get_single_transaction(client, admin_headers):
    supplier = create_supplier(client, admin_headers)
    tx = create_transaction(client, admin_headers, supplier["id"], "credit", 12.5, description="Cash payment")

    response = client.get(f"/transactions/{tx['id']}", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["description"] == "Cash payment"
    assert Decimal(body["amount"]) == Decimal("12.50")
    assert body["created_by"] == "admin@example.com"
    assert client.get("/transactions/777", headers=admin_headers).status_code == 404


def test_deleting_supplier_removes_all_its_transactions(client, admin_headers, db_session):
    supplier = create_supplier(client, admin_headers)
    other = create_supplier(client, admin_headers, name="Other Co")
    for amount in (10, 20, 30):
        create_transaction(client, admin_headers, supplier["id"], "debit", amount)
    create_transaction(client, admin_headers, other["id"], "credit", 5)

    assert client.delete(f"/suppliers/{supplier['id']}", headers=admin_headers).status_code == 204

    assert db_session.query(func.count(Transaction.id)).filter(Transaction.supplier_id == supplier["id"]).scalar() == 0
    assert client.get(f"/suppliers/{supplier['id']}", headers=admin_headers).status_code == 404
    assert get_balance(client, admin_headers, other["id"]) == Decimal("5")


@pytest.fixture
def file_sessionmaker(tmp_path):
    """A file-backed SQLite database, so separate sessions use separate connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_stale_sessions_do_not_lose_updates(file_sessionmaker):
    setup = file_sessionmaker()
    supplier = crud_create_supplier(setup, SupplierCreate(name="Shared", category=SupplierCategory.SERVICES))
    supplier_id = supplier.id
    setup.close()

    first, second = file_sessionmaker(), file_sessionmaker()
    try:
        # Both sessions read the same starting balance before either writes
        assert first.get(Supplier, supplier_id).balance == Decimal("0")
        assert second.get(Supplier, supplier_id).balance == Decimal("0")

        crud_transactions.create_transaction(
            first, TransactionCreate(supplier_id=supplier_id, type=TransactionType.CREDIT, amount=Decimal("70"), date=date(2024, 5, 1))
        )
        crud_transactions.create_transaction(
            second, TransactionCreate(supplier_id=supplier_id, type=TransactionType.DEBIT, amount=Decimal("20"), date=date(2024, 5, 1))
        )
    finally:
        first.close()
        second.close()

    check = file_sessionmaker()
    assert check.get(Supplier, supplier_id).balance == Decimal("50")
    check.close()


def test_concurrent_creates_sum_like_serial_execution(file_sessionmaker):
    setup = file_sessionmaker()
    supplier_id = crud_create_supplier(
        setup, SupplierCreate(name="Busy", category=SupplierCategory.EQUIPMENT, opening_balance=Decimal("100"))
    ).id
    setup.close()

    def record(i):
        db = file_sessionmaker()
        try:
            type_ = TransactionType.CREDIT if i % 2 else TransactionType.DEBIT
            crud_transactions.create_transaction(
                db, TransactionCreate(supplier_id=supplier_id, type=type_, amount=Decimal(i + 1), date=date(2024, 6, 1))
            )
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(record, range(20)))

    expected = Decimal("100") + sum(Decimal(i + 1) if i % 2 else -Decimal(i + 1) for i in range(20))
    check = file_sessionmaker()
    try:
        assert check.query(func.count(Transaction.id)).scalar() == 20
        assert check.get(Supplier, supplier_id).balance == expected
    finally:
        check.close()


def test_crud_delete_raises_for_missing_transaction(db_session):
    with pytest.raises(TransactionNotFoundError):
        crud_transactions.delete_transaction(db_session, 31337)


def test_failed_reversal_keeps_transaction_and_balance(db_session, monkeypatch):
    supplier = crud_create_supplier(db_session, SupplierCreate(name="Reversal", category=SupplierCategory.OTHER))
    tx = crud_transactions.create_transaction(
        db_session,
        TransactionCreate(supplier_id=supplier.id, type=TransactionType.DEBIT, amount=Decimal("25"), date=date(2024, 1, 1)),
    )
    tx_id, supplier_id = tx.id, supplier.id

    def broken_delta(*args, **kwargs):
        raise SQLAlchemyError("connection dropped")

    monkeypatch.setattr(crud_transactions, "apply_balance_delta", broken_delta)
    with pytest.raises(PersistenceError):
        crud_transactions.delete_transaction(db_session, tx_id)

    db_session.expire_all()
    assert db_session.get(Transaction, tx_id) is not None
    assert db_session.get(Supplier, supplier_id).balance == Decimal("-25")


def test_supplier_deleted_before_balance_update_yields_not_found(file_sessionmaker, monkeypatch):
    setup = file_sessionmaker()
    supplier_id = crud_create_supplier(setup, SupplierCreate(name="Vanishing", category=SupplierCategory.CLOTHING)).id
    setup.close()

    real_apply = crud_transactions.apply_balance_delta

    def delete_first(db, target_id, delta):
        # Another request removes the supplier while this one is in flight
        other = file_sessionmaker()
        try:
            assert crud_delete_supplier(other, target_id) is True
        finally:
            other.close()
        return real_apply(db, target_id, delta)

    monkeypatch.setattr(crud_transactions, "apply_balance_delta", delete_first)
    creator = file_sessionmaker()
    try:
        with pytest.raises(SupplierNotFoundError):
            crud_transactions.create_transaction(
                creator,
                TransactionCreate(supplier_id=supplier_id, type=TransactionType.DEBIT, amount=Decimal("15"), date=date(2024, 7, 1)),
            )
    finally:
        creator.close()

    check = file_sessionmaker()
    try:
        assert check.get(Supplier, supplier_id) is None
        assert check.query(func.count(Transaction.id)).filter(Transaction.supplier_id == supplier_id).scalar() == 0
    finally:
        check.close()


def test_negative_skip_is_rejected(client, admin_headers):
    assert client.get("/transactions/", params={"skip": -5}, headers=admin_headers).status_code == 422
    assert client.get("/suppliers/", params={"skip": -5}, headers=admin_headers).status_code == 422
