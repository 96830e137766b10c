import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from crud.transactions import delete_transactions_by_supplier
from exceptions import PersistenceError
from models.suppliers import Supplier, SupplierCategory
from schemas.audit_log import AuditLogCreate
from schemas.suppliers import SupplierCreate, SupplierUpdate
from utils import sqlalchemy_to_dict

logger = logging.getLogger(__name__)

# Columns a patch may not clear
REQUIRED_FIELDS = ("name", "category")


def get_supplier(db: Session, supplier_id: int) -> Optional[Supplier]:
    return db.query(Supplier).filter(Supplier.id == supplier_id).first()


def get_suppliers(
    db: Session,
    skip: int = 0,
    limit: Optional[int] = None,
    category: Optional[SupplierCategory] = None,
    search: Optional[str] = None,
) -> List[Supplier]:
    query = db.query(Supplier)
    if category:
        query = query.filter(Supplier.category == category)
    if search:
        query = query.filter(Supplier.name.ilike(f"%{search.strip()}%"))
    query = query.order_by(Supplier.name.asc(), Supplier.id.asc())
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def create_supplier(db: Session, supplier: SupplierCreate, user_id: str = None) -> Supplier:
    data = supplier.model_dump()
    opening_balance = data.pop("opening_balance") or Decimal("0")
    db_supplier = Supplier(
        **data,
        opening_balance=opening_balance,
        balance=opening_balance,
        created_by=user_id,
    )
    try:
        db.add(db_supplier)
        db.flush()
        create_audit_log(db=db, log_entry=AuditLogCreate(
            table_name='suppliers',
            record_id=db_supplier.id,
            changed_by=user_id or "system",
            action='INSERT',
            new_values=sqlalchemy_to_dict(db_supplier)
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to create supplier '{supplier.name}'")
        raise PersistenceError("Failed to create supplier") from e
    db.refresh(db_supplier)
    return db_supplier


def update_supplier(db: Session, supplier_id: int, supplier: SupplierUpdate, user_id: str = None) -> Optional[Supplier]:
    """
    Apply a partial update to a supplier's descriptive fields.

    The cached balance is never written directly. A new opening balance
    shifts the balance by the difference, in SQL, so the balance keeps
    equalling opening balance plus the signed transaction total.
    """
    db_supplier = get_supplier(db, supplier_id)
    if db_supplier is None:
        return None

    old_values = sqlalchemy_to_dict(db_supplier)
    supplier_data = supplier.model_dump(exclude_unset=True)
    new_opening_balance = supplier_data.pop("opening_balance", None)
    for key in REQUIRED_FIELDS:
        if key in supplier_data and supplier_data[key] is None:
            supplier_data.pop(key)

    try:
        for key, value in supplier_data.items():
            setattr(db_supplier, key, value)
        db_supplier.updated_by = user_id
        db.flush()

        if new_opening_balance is not None:
            db.query(Supplier).filter(Supplier.id == supplier_id).update(
                {
                    Supplier.balance: Supplier.balance + (new_opening_balance - Supplier.opening_balance),
                    Supplier.opening_balance: new_opening_balance,
                },
                synchronize_session=False,
            )
            db.refresh(db_supplier)

        create_audit_log(db=db, log_entry=AuditLogCreate(
            table_name='suppliers',
            record_id=supplier_id,
            changed_by=user_id or "system",
            action='UPDATE',
            old_values=old_values,
            new_values=sqlalchemy_to_dict(db_supplier)
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to update supplier {supplier_id}")
        raise PersistenceError("Failed to update supplier") from e

    db.refresh(db_supplier)
    return db_supplier


def delete_supplier(db: Session, supplier_id: int, user_id: str = None) -> bool:
    """
    Delete a supplier together with all of its transactions.

    Both deletes share one database transaction, so a failure leaves the
    supplier and every one of its transactions in place. Returns False when
    the supplier does not exist.
    """
    # Row lock keeps new transactions from being attached mid-cascade
    db_supplier = db.query(Supplier).filter(Supplier.id == supplier_id).with_for_update().first()
    if db_supplier is None:
        db.rollback()
        return False

    old_values = sqlalchemy_to_dict(db_supplier)
    try:
        removed_transactions = delete_transactions_by_supplier(db, supplier_id, commit=False)
        db.query(Supplier).filter(Supplier.id == supplier_id).delete(synchronize_session=False)
        create_audit_log(db=db, log_entry=AuditLogCreate(
            table_name='suppliers',
            record_id=supplier_id,
            changed_by=user_id or "system",
            action='DELETE',
            old_values=old_values,
            new_values={"removed_transactions": removed_transactions}
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to delete supplier {supplier_id}")
        raise PersistenceError("Failed to delete supplier") from e

    db.expunge(db_supplier)
    logger.info(f"Supplier '{old_values['name']}' (ID: {supplier_id}) and {removed_transactions} transactions deleted by {user_id}")
    return True
