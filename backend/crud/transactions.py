"""
Transaction lifecycle and supplier balance maintenance.

A transaction is created or deleted together with the matching change to its
supplier's cached balance, in one database transaction. The balance change is
always issued as ``balance = balance + :delta`` so the database applies it
relative to the committed value; concurrent writers on the same supplier
cannot overwrite each other's adjustment.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from exceptions import PersistenceError, SupplierNotFoundError, TransactionNotFoundError, ValidationError
from models.suppliers import Supplier
from models.transactions import Transaction, TransactionType
from schemas.audit_log import AuditLogCreate
from schemas.transactions import TransactionCreate
from utils import sqlalchemy_to_dict

logger = logging.getLogger(__name__)


def get_transaction(db: Session, transaction_id: int) -> Optional[Transaction]:
    return db.query(Transaction).filter(Transaction.id == transaction_id).first()


def get_transactions(db: Session, supplier_id: Optional[int] = None, skip: int = 0, limit: Optional[int] = None) -> List[Transaction]:
    """Most recent date first; same-date rows newest insert first."""
    query = db.query(Transaction)
    if supplier_id is not None:
        query = query.filter(Transaction.supplier_id == supplier_id)
    query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_transactions_by_supplier(db: Session, supplier_id: int) -> List[Transaction]:
    return get_transactions(db, supplier_id=supplier_id)


def apply_balance_delta(db: Session, supplier_id: int, delta: Decimal) -> int:
    """Add ``delta`` to the supplier's balance inside the current unit of work.

    Returns the number of supplier rows touched (0 when the supplier is gone).
    """
    return db.query(Supplier).filter(Supplier.id == supplier_id).update(
        {Supplier.balance: Supplier.balance + delta},
        synchronize_session=False,
    )


def _validate(transaction: TransactionCreate):
    if not isinstance(transaction.type, TransactionType):
        raise ValidationError("type must be 'credit' or 'debit'")
    if transaction.amount is None or Decimal(transaction.amount) <= 0:
        raise ValidationError("amount must be greater than zero")


def create_transaction(db: Session, transaction: TransactionCreate, user_id: str = None) -> Transaction:
    """
    Record a transaction and move its supplier's balance by the signed amount.

    The balance update runs before the insert. Its row lock holds off a
    concurrent supplier delete, and a zero rowcount means the supplier is gone.

    Raises:
        ValidationError: type or amount is invalid; nothing is written.
        SupplierNotFoundError: the supplier does not exist; nothing is written.
        PersistenceError: the database failed; the insert and the balance
            change are rolled back together.
    """
    _validate(transaction)

    db_transaction = Transaction(**transaction.model_dump(), created_by=user_id)
    try:
        if apply_balance_delta(db, transaction.supplier_id, db_transaction.balance_delta) == 0:
            db.rollback()
            raise SupplierNotFoundError(transaction.supplier_id)
        db.add(db_transaction)
        db.flush()
        create_audit_log(db=db, log_entry=AuditLogCreate(
            table_name='transactions',
            record_id=db_transaction.id,
            changed_by=user_id or "system",
            action='INSERT',
            new_values=sqlalchemy_to_dict(db_transaction)
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to create transaction for supplier {transaction.supplier_id}")
        raise PersistenceError("Failed to create transaction") from e

    db.refresh(db_transaction)
    logger.info(
        f"Transaction {db_transaction.id} ({db_transaction.type.value} {db_transaction.amount}) "
        f"recorded for supplier {db_transaction.supplier_id} by {user_id}"
    )
    return db_transaction


def delete_transaction(db: Session, transaction_id: int, user_id: str = None) -> None:
    """
    Delete a transaction and reverse its effect on the supplier's balance.

    Raises TransactionNotFoundError when the transaction does not exist or a
    concurrent request deleted it first. A supplier that no longer exists
    makes the reversal a no-op rather than an error.
    """
    db_transaction = get_transaction(db, transaction_id)
    if db_transaction is None:
        raise TransactionNotFoundError(transaction_id)

    supplier_id = db_transaction.supplier_id
    reversal = -db_transaction.balance_delta
    old_values = sqlalchemy_to_dict(db_transaction)
    try:
        # Removing the row first means only one of two racing deletes sees it
        removed = db.query(Transaction).filter(Transaction.id == transaction_id).delete(synchronize_session=False)
        if removed == 0:
            db.rollback()
            raise TransactionNotFoundError(transaction_id)
        apply_balance_delta(db, supplier_id, reversal)
        create_audit_log(db=db, log_entry=AuditLogCreate(
            table_name='transactions',
            record_id=transaction_id,
            changed_by=user_id or "system",
            action='DELETE',
            old_values=old_values
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to delete transaction {transaction_id}")
        raise PersistenceError("Failed to delete transaction") from e

    db.expunge(db_transaction)
    logger.info(f"Transaction {transaction_id} deleted by {user_id}; supplier {supplier_id} balance adjusted by {reversal}")


def delete_transactions_by_supplier(db: Session, supplier_id: int, commit: bool = True) -> int:
    """
    Bulk-remove a supplier's transactions without reversing balances.

    Only meant to run ahead of deleting the supplier itself; pass
    ``commit=False`` to keep both steps in the caller's unit of work.
    """
    removed = db.query(Transaction).filter(Transaction.supplier_id == supplier_id).delete(synchronize_session=False)
    if commit:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to delete transactions of supplier {supplier_id}")
            raise PersistenceError("Failed to delete transactions") from e
    logger.info(f"Removed {removed} transactions of supplier {supplier_id}")
    return removed
