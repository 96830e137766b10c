from pydantic import BaseModel
from typing import Optional, Dict, Any, Literal

AuditAction = Literal["INSERT", "UPDATE", "DELETE", "RECONCILE"]


class AuditLogCreate(BaseModel):
    table_name: Literal["suppliers", "transactions"]
    record_id: int
    changed_by: str
    action: AuditAction
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
