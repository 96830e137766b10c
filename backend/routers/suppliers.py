from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from crud import suppliers as crud
from crud import transactions as crud_transactions
from crud import reconciliation as crud_reconciliation
from models.users import User
from schemas.suppliers import BalanceDrift, Supplier, SupplierCreate, SupplierUpdate, SupplierCategory
from schemas.transactions import Transaction
from utils.auth_utils import get_current_user, get_user_identifier, require_role

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])
logger = logging.getLogger("suppliers")


@router.get("/", response_model=List[Supplier])
def read_suppliers(
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    category: Optional[SupplierCategory] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    return crud.get_suppliers(db, skip=skip, limit=limit, category=category, search=search)


@router.post("/", response_model=Supplier, status_code=status.HTTP_201_CREATED)
def create_supplier(
    supplier: SupplierCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin", "editor"]))
):
    db_supplier = crud.create_supplier(db, supplier, user_id=get_user_identifier(user))
    logger.info(f"Supplier '{db_supplier.name}' (ID: {db_supplier.id}) created by user {get_user_identifier(user)}")
    return db_supplier


@router.get("/reconciliation", response_model=List[BalanceDrift])
def read_balance_drift(
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin"]))
):
    """List suppliers whose cached balance disagrees with their transactions."""
    return crud_reconciliation.reconcile_balances(db, fix=False)


@router.post("/reconciliation", response_model=List[BalanceDrift])
def repair_balance_drift(
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin"]))
):
    """Rewrite drifted balances from the transaction log; returns what was repaired."""
    drift = crud_reconciliation.reconcile_balances(db, fix=True, user_id=get_user_identifier(user))
    logger.info(f"Balance reconciliation run by user {get_user_identifier(user)} repaired {len(drift)} suppliers")
    return drift


@router.get("/{supplier_id}", response_model=Supplier)
def read_supplier(supplier_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db_supplier = crud.get_supplier(db, supplier_id)
    if db_supplier is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return db_supplier


@router.get("/{supplier_id}/transactions", response_model=List[Transaction])
def read_supplier_transactions(supplier_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if crud.get_supplier(db, supplier_id) is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return crud_transactions.get_transactions_by_supplier(db, supplier_id)


@router.patch("/{supplier_id}", response_model=Supplier)
def update_supplier(
    supplier_id: int,
    supplier: SupplierUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin", "editor"]))
):
    db_supplier = crud.update_supplier(db, supplier_id, supplier, user_id=get_user_identifier(user))
    if db_supplier is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    logger.info(f"Supplier '{db_supplier.name}' (ID: {supplier_id}) updated by user {get_user_identifier(user)}")
    return db_supplier


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin"]))
):
    if not crud.delete_supplier(db, supplier_id, user_id=get_user_identifier(user)):
        raise HTTPException(status_code=404, detail="Supplier not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
