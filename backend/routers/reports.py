from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from io import BytesIO
from typing import Optional
from datetime import date
import logging

from database import get_db
from crud.suppliers import get_supplier, get_suppliers
from crud.transactions import get_transactions
from models.suppliers import Supplier
from models.users import User
from utils.auth_utils import get_current_user, get_user_identifier
from utils.exports import (
    PDF_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    supplier_statement_to_pdf,
    suppliers_to_excel,
    suppliers_to_pdf,
    transactions_to_excel,
    transactions_to_pdf,
)

router = APIRouter(prefix="/reports", tags=["Reports"])
logger = logging.getLogger("reports")


def _download(content: bytes, media_type: str, filename: str) -> StreamingResponse:
    headers = {
        'Content-Disposition': f'attachment; filename="{filename}"'
    }
    return StreamingResponse(BytesIO(content), media_type=media_type, headers=headers)


def _supplier_names(db: Session):
    return {supplier_id: name for supplier_id, name in db.query(Supplier.id, Supplier.name).all()}


def _filtered_transactions(db: Session, supplier_id: Optional[int]):
    if supplier_id is not None and get_supplier(db, supplier_id) is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return get_transactions(db, supplier_id=supplier_id)


@router.get("/suppliers.xlsx")
def export_suppliers_excel(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    content = suppliers_to_excel(get_suppliers(db))
    logger.info(f"Suppliers workbook exported by {get_user_identifier(user)}")
    return _download(content, XLSX_MEDIA_TYPE, f"suppliers_{date.today().isoformat()}.xlsx")


@router.get("/suppliers.pdf")
def export_suppliers_pdf(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    content = suppliers_to_pdf(get_suppliers(db))
    logger.info(f"Suppliers PDF exported by {get_user_identifier(user)}")
    return _download(content, PDF_MEDIA_TYPE, f"suppliers_{date.today().isoformat()}.pdf")


@router.get("/transactions.xlsx")
def export_transactions_excel(
    supplier_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    transactions = _filtered_transactions(db, supplier_id)
    content = transactions_to_excel(transactions, _supplier_names(db))
    return _download(content, XLSX_MEDIA_TYPE, f"transactions_{date.today().isoformat()}.xlsx")


@router.get("/transactions.pdf")
def export_transactions_pdf(
    supplier_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    transactions = _filtered_transactions(db, supplier_id)
    content = transactions_to_pdf(transactions, _supplier_names(db))
    return _download(content, PDF_MEDIA_TYPE, f"transactions_{date.today().isoformat()}.pdf")


@router.get("/suppliers/{supplier_id}/statement.pdf")
def export_supplier_statement(supplier_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Account statement for one supplier with a running balance column."""
    supplier = get_supplier(db, supplier_id)
    if supplier is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    content = supplier_statement_to_pdf(supplier, get_transactions(db, supplier_id=supplier_id))
    logger.info(f"Statement for supplier {supplier_id} exported by {get_user_identifier(user)}")
    return _download(content, PDF_MEDIA_TYPE, f"statement_{supplier_id}_{date.today().isoformat()}.pdf")
