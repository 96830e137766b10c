from datetime import datetime
from typing import Any, Dict

import pytz
from sqlalchemy.orm import Session

from config import APP_TIMEZONE
from crud.suppliers import get_suppliers
from crud.transactions import get_transactions
from crud.users import sanitize_user
from models.users import User
from utils import sqlalchemy_to_dict

BACKUP_FORMAT_VERSION = "1.0"


def build_backup_payload(db: Session, created_by: User = None) -> Dict[str, Any]:
    """Snapshot suppliers, transactions and users as a JSON-ready document. Read-only."""
    suppliers = [sqlalchemy_to_dict(s) for s in get_suppliers(db)]
    transactions = [sqlalchemy_to_dict(t) for t in get_transactions(db)]
    users = [sanitize_user(u) for u in db.query(User).order_by(User.id).all()]

    if created_by is not None:
        creator = {"user_id": created_by.id, "user_name": created_by.display_name, "user_email": created_by.email}
    else:
        creator = {"user_id": None, "user_name": "system", "user_email": None}

    return {
        "metadata": {
            "created_at": datetime.now(pytz.timezone(APP_TIMEZONE)).isoformat(),
            **creator,
            "version": BACKUP_FORMAT_VERSION,
            "total_suppliers": len(suppliers),
            "total_transactions": len(transactions),
            "total_users": len(users),
        },
        "data": {
            "suppliers": suppliers,
            "transactions": transactions,
            "users": users,
        },
    }
