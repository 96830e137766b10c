"""
Balance reconciliation.

Recomputes every supplier's balance from its opening balance and
transaction log and reports (optionally repairs) suppliers whose cached
balance has drifted.
"""

import logging
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from exceptions import PersistenceError
from models.suppliers import Supplier
from models.transactions import Transaction, TransactionType
from schemas.audit_log import AuditLogCreate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _signed_amount():
    return case(
        (Transaction.type == TransactionType.CREDIT, Transaction.amount),
        else_=-Transaction.amount,
    )


def _to_decimal(value) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(CENT)


def find_balance_drift(db: Session) -> List[Dict]:
    """Suppliers whose cached balance differs from opening balance + signed transaction total."""
    totals = (
        db.query(
            Transaction.supplier_id.label("supplier_id"),
            func.sum(_signed_amount()).label("net"),
        )
        .group_by(Transaction.supplier_id)
        .subquery()
    )
    rows = (
        db.query(Supplier, totals.c.net)
        .outerjoin(totals, totals.c.supplier_id == Supplier.id)
        .order_by(Supplier.id)
        .all()
    )

    drift = []
    for supplier, net in rows:
        cached = _to_decimal(supplier.balance)
        expected = _to_decimal(supplier.opening_balance) + _to_decimal(net)
        if cached != expected:
            drift.append({
                "supplier_id": supplier.id,
                "name": supplier.name,
                "cached_balance": cached,
                "expected_balance": expected,
                "drift": cached - expected,
            })
    return drift


def reconcile_balances(db: Session, fix: bool = False, user_id: str = None) -> List[Dict]:
    """
    Report balance drift; with ``fix=True`` also rewrite the drifted balances.

    The repair recomputes the total inside the UPDATE itself, so a
    transaction committed between the report and the repair is still counted.
    """
    drift = find_balance_drift(db)
    if not drift:
        logger.info("Balance reconciliation: no drift found")
        return drift

    for entry in drift:
        logger.warning(
            f"Balance drift for supplier {entry['supplier_id']} ('{entry['name']}'): "
            f"cached {entry['cached_balance']}, expected {entry['expected_balance']}"
        )

    if not fix:
        return drift

    supplier_ids = [entry["supplier_id"] for entry in drift]
    net = (
        select(func.coalesce(func.sum(_signed_amount()), 0))
        .where(Transaction.supplier_id == Supplier.id)
        .scalar_subquery()
    )
    try:
        db.execute(
            update(Supplier)
            .where(Supplier.id.in_(supplier_ids))
            .values(balance=Supplier.opening_balance + net)
            .execution_options(synchronize_session=False)
        )
        for entry in drift:
            create_audit_log(db=db, log_entry=AuditLogCreate(
                table_name='suppliers',
                record_id=entry["supplier_id"],
                changed_by=user_id or "system",
                action='RECONCILE',
                old_values={"balance": str(entry["cached_balance"])},
                new_values={"balance": str(entry["expected_balance"])}
            ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to repair supplier balances")
        raise PersistenceError("Failed to reconcile balances") from e

    logger.info(f"Balance reconciliation repaired {len(drift)} suppliers")
    return drift
