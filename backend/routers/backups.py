from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from crud.backups import build_backup_payload
from models.users import User
from schemas.backups import BackupList, BackupResult, BackupStatus
from utils import s3_backup
from utils.auth_utils import get_user_identifier, require_role

router = APIRouter(prefix="/backups", tags=["Backups"])
logger = logging.getLogger("backups")

STORAGE_ERROR_DETAIL = "Backup storage is unavailable"


@router.get("/status", response_model=BackupStatus)
def backup_status(user: User = Depends(require_role(["admin"]))):
    return s3_backup.check_connection()


@router.get("/", response_model=BackupList)
def list_backups(user: User = Depends(require_role(["admin"]))):
    try:
        return s3_backup.list_backups()
    except s3_backup.BackupStorageError:
        raise HTTPException(status_code=502, detail=STORAGE_ERROR_DETAIL)


@router.post("/", response_model=BackupResult)
def create_backup(db: Session = Depends(get_db), user: User = Depends(require_role(["admin"]))):
    """Snapshot suppliers, transactions and users and upload the JSON document."""
    payload = build_backup_payload(db, created_by=user)
    try:
        stored = s3_backup.upload_backup(payload)
    except s3_backup.BackupStorageError:
        raise HTTPException(status_code=502, detail=STORAGE_ERROR_DETAIL)

    metadata = payload["metadata"]
    logger.info(f"Backup {stored['name']} created by {get_user_identifier(user)}")
    return {
        "success": True,
        **stored,
        "total_suppliers": metadata["total_suppliers"],
        "total_transactions": metadata["total_transactions"],
        "total_users": metadata["total_users"],
    }


@router.get("/{key}")
def download_backup(key: str, user: User = Depends(require_role(["admin"]))):
    try:
        return s3_backup.download_backup(key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except s3_backup.BackupNotFoundError:
        raise HTTPException(status_code=404, detail="Backup not found")
    except s3_backup.BackupStorageError:
        raise HTTPException(status_code=502, detail=STORAGE_ERROR_DETAIL)


@router.delete("/{key}")
def delete_backup(key: str, user: User = Depends(require_role(["admin"]))):
    try:
        result = s3_backup.delete_backup(key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except s3_backup.BackupStorageError:
        raise HTTPException(status_code=502, detail=STORAGE_ERROR_DETAIL)
    logger.info(f"Backup {key} deleted by {get_user_identifier(user)}")
    return result
