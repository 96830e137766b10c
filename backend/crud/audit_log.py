from sqlalchemy.orm import Session
from models.audit_log import AuditLog
from schemas.audit_log import AuditLogCreate


def create_audit_log(db: Session, log_entry: AuditLogCreate):
    """Stage an audit row in the caller's unit of work; the caller commits."""
    db_log_entry = AuditLog(**log_entry.model_dump())
    db.add(db_log_entry)
    return db_log_entry


def get_audit_logs(db: Session, table_name: str, record_id: int):
    return db.query(AuditLog).filter(
        AuditLog.table_name == table_name,
        AuditLog.record_id == record_id
    ).order_by(AuditLog.id.asc()).all()
