from decimal import Decimal

import pytest
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

import crud.suppliers as crud_suppliers
from crud.audit_log import get_audit_logs
from exceptions import PersistenceError
from models.suppliers import Supplier
from models.transactions import Transaction

from conftest import create_supplier, create_transaction, get_balance


def test_create_supplier_starts_at_opening_balance(client, admin_headers):
    supplier = create_supplier(
        client, admin_headers,
        name="  Baghdad Electronics  ",
        category="Electronics",
        phone="+964 770 000 0000",
        email="sales@baghdad-electronics.example",
        opening_balance="2500.50",
    )
    assert supplier["name"] == "Baghdad Electronics"
    assert supplier["category"] == "Electronics"
    assert Decimal(supplier["opening_balance"]) == Decimal("2500.50")
    assert Decimal(supplier["balance"]) == Decimal("2500.50")
    assert supplier["created_by"] == "admin@example.com"


def test_create_supplier_validation(client, admin_headers):
    for payload in (
        {"name": "", "category": "Other"},
        {"name": "   ", "category": "Other"},
        {"name": "No category"},
        {"name": "Bad category", "category": "Weapons"},
        {"name": "Bad email", "category": "Other", "email": "not-an-email"},
    ):
        response = client.post("/suppliers/", json=payload, headers=admin_headers)
        assert response.status_code == 422, payload
    assert client.get("/suppliers/", headers=admin_headers).json() == []


def test_list_suppliers_filters_and_orders_by_name(client, admin_headers):
    create_supplier(client, admin_headers, name="Zain Furniture", category="Furniture")
    create_supplier(client, admin_headers, name="Amal Clothing", category="Clothing")
    create_supplier(client, admin_headers, name="Karbala Furniture", category="Furniture")

    names = [s["name"] for s in client.get("/suppliers/", headers=admin_headers).json()]
    assert names == ["Amal Clothing", "Karbala Furniture", "Zain Furniture"]

    furniture = client.get("/suppliers/", params={"category": "Furniture"}, headers=admin_headers).json()
    assert [s["name"] for s in furniture] == ["Karbala Furniture", "Zain Furniture"]

    search = client.get("/suppliers/", params={"search": "amal"}, headers=admin_headers).json()
    assert [s["name"] for s in search] == ["Amal Clothing"]

    limited = client.get("/suppliers/", params={"skip": 1, "limit": 1}, headers=admin_headers).json()
    assert [s["name"] for s in limited] == ["Karbala Furniture"]


def test_update_supplier_fields(client, admin_headers, db_session):
    supplier = create_supplier(client, admin_headers)
    response = client.patch(
        f"/suppliers/{supplier['id']}",
        json={"phone": "07701234567", "notes": "Pays monthly", "name": None},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["phone"] == "07701234567"
    assert body["notes"] == "Pays monthly"
    assert body["name"] == supplier["name"]
    assert body["updated_by"] == "admin@example.com"

    actions = [log.action for log in get_audit_logs(db_session, "suppliers", supplier["id"])]
    assert actions == ["INSERT", "UPDATE"]


def test_balance_cannot_be_patched_directly(client, admin_headers):
    supplier = create_supplier(client, admin_headers, opening_balance="100")
    response = client.patch(f"/suppliers/{supplier['id']}", json={"balance": "999999"}, headers=admin_headers)
    assert response.status_code == 200
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("100")


def test_changing_opening_balance_shifts_balance_by_difference(client, admin_headers):
    supplier = create_supplier(client, admin_headers, opening_balance="100")
    create_transaction(client, admin_headers, supplier["id"], "debit", 40)
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("60")

    response = client.patch(f"/suppliers/{supplier['id']}", json={"opening_balance": "250"}, headers=admin_headers)
    assert response.status_code == 200
    assert Decimal(response.json()["opening_balance"]) == Decimal("250")
    assert Decimal(response.json()["balance"]) == Decimal("210")


def test_missing_supplier_returns_404(client, admin_headers):
    assert client.get("/suppliers/404", headers=admin_headers).status_code == 404
    assert client.patch("/suppliers/404", json={"notes": "x"}, headers=admin_headers).status_code == 404
    assert client.delete("/suppliers/404", headers=admin_headers).status_code == 404
    assert client.get("/suppliers/404/transactions", headers=admin_headers).status_code == 404


def test_supplier_delete_is_audited(client, admin_headers, db_session):
    supplier = create_supplier(client, admin_headers)
    create_transaction(client, admin_headers, supplier["id"], "credit", 15)
    create_transaction(client, admin_headers, supplier["id"], "debit", 5)

    assert client.delete(f"/suppliers/{supplier['id']}", headers=admin_headers).status_code == 204

    delete_log = get_audit_logs(db_session, "suppliers", supplier["id"])[-1]
    assert delete_log.action == "DELETE"
    assert delete_log.new_values == {"removed_transactions": 2}
    assert delete_log.old_values["name"] == supplier["name"]


def test_failed_supplier_delete_keeps_supplier_and_transactions(client, admin_headers, db_session, monkeypatch):
    supplier = create_supplier(client, admin_headers, opening_balance="100")
    create_transaction(client, admin_headers, supplier["id"], "debit", 30)
    create_transaction(client, admin_headers, supplier["id"], "credit", 10)

    def broken_audit(*args, **kwargs):
        raise SQLAlchemyError("audit table unavailable")

    monkeypatch.setattr(crud_suppliers, "create_audit_log", broken_audit)
    with pytest.raises(PersistenceError):
        crud_suppliers.delete_supplier(db_session, supplier["id"], user_id="admin@example.com")

    db_session.expire_all()
    assert db_session.get(Supplier, supplier["id"]) is not None
    assert db_session.query(func.count(Transaction.id)).filter(Transaction.supplier_id == supplier["id"]).scalar() == 2
    assert get_balance(client, admin_headers, supplier["id"]) == Decimal("80")
