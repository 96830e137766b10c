from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class BackupFile(BaseModel):
    key: str
    name: str
    size: Optional[int] = None
    created_time: Optional[datetime] = None


class BackupList(BaseModel):
    backups: List[BackupFile]
    bucket: str


class BackupResult(BaseModel):
    success: bool
    key: str
    name: str
    created_time: datetime
    total_suppliers: int
    total_transactions: int
    total_users: int


class BackupStatus(BaseModel):
    connected: bool
    bucket: str
    error: Optional[str] = None
