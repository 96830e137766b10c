from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from crud import transactions as crud
from models.users import User
from schemas.transactions import Transaction, TransactionCreate
from utils.auth_utils import get_current_user, get_user_identifier, require_role

router = APIRouter(prefix="/transactions", tags=["Transactions"])
logger = logging.getLogger("transactions")


@router.get("/", response_model=List[Transaction])
def read_transactions(
    supplier_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Transactions, most recent date first."""
    return crud.get_transactions(db, supplier_id=supplier_id, skip=skip, limit=limit)


@router.get("/{transaction_id}", response_model=Transaction)
def read_transaction(transaction_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db_transaction = crud.get_transaction(db, transaction_id)
    if db_transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return db_transaction


@router.post("/", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: TransactionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin", "editor"]))
):
    """Record a transaction and adjust the supplier's balance (credit adds, debit subtracts)."""
    return crud.create_transaction(db, transaction, user_id=get_user_identifier(user))


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_role(["admin"]))
):
    """Delete a transaction and reverse its effect on the supplier's balance."""
    crud.delete_transaction(db, transaction_id, user_id=get_user_identifier(user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
