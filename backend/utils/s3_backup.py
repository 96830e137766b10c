import boto3
from botocore.exceptions import BotoCoreError, ClientError
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from config import AWS_DEFAULT_REGION, BACKUP_S3_BUCKET, BACKUP_S3_PREFIX

logger = logging.getLogger(__name__)

# Reusable S3 client
S3_CLIENT = None
MAX_LISTED_BACKUPS = 20


class BackupStorageError(RuntimeError):
    """The backup bucket could not be reached or rejected the request."""


class BackupNotFoundError(BackupStorageError):
    pass


def get_s3_client():
    """Initializes and returns a reusable S3 client."""
    global S3_CLIENT
    if S3_CLIENT is None:
        S3_CLIENT = boto3.client('s3', region_name=AWS_DEFAULT_REGION)
        logger.info(f"S3 client initialized for region: {AWS_DEFAULT_REGION}")
    return S3_CLIENT


def _full_key(key: str) -> str:
    if key.startswith(BACKUP_S3_PREFIX):
        return key
    if "/" in key or ".." in key:
        raise ValueError(f"Invalid backup key: {key}")
    return f"{BACKUP_S3_PREFIX}{key}"


def upload_backup(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Serializes the backup payload to JSON and stores it in the backup bucket.

    Args:
        payload: The document produced by crud.backups.build_backup_payload.

    Returns:
        A dictionary with the object key, file name and creation time.
    """
    created_time = datetime.now(timezone.utc)
    file_name = f"backup_{created_time.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.json"
    s3_key = f"{BACKUP_S3_PREFIX}{file_name}"
    body = json.dumps(payload, ensure_ascii=False, indent=2, default=str).encode("utf-8")

    try:
        get_s3_client().put_object(
            Bucket=BACKUP_S3_BUCKET,
            Key=s3_key,
            Body=body,
            ContentType="application/json",
        )
    except (ClientError, BotoCoreError) as e:
        logger.exception(f"Failed to upload backup to s3://{BACKUP_S3_BUCKET}/{s3_key}")
        raise BackupStorageError(f"Could not upload backup: {e}")

    logger.info(f"Uploaded backup ({len(body)} bytes) to s3://{BACKUP_S3_BUCKET}/{s3_key}")
    return {"key": s3_key, "name": file_name, "created_time": created_time}


def list_backups() -> Dict[str, Any]:
    """Lists stored backups, newest first."""
    try:
        response = get_s3_client().list_objects_v2(Bucket=BACKUP_S3_BUCKET, Prefix=BACKUP_S3_PREFIX)
    except (ClientError, BotoCoreError) as e:
        logger.exception("Failed to list backups")
        raise BackupStorageError(f"Could not list backups: {e}")

    objects = sorted(response.get("Contents", []), key=lambda obj: obj["LastModified"], reverse=True)
    backups = [
        {
            "key": obj["Key"],
            "name": obj["Key"][len(BACKUP_S3_PREFIX):],
            "size": obj.get("Size"),
            "created_time": obj["LastModified"],
        }
        for obj in objects[:MAX_LISTED_BACKUPS]
    ]
    return {"backups": backups, "bucket": BACKUP_S3_BUCKET}


def download_backup(key: str) -> Dict[str, Any]:
    s3_key = _full_key(key)
    try:
        response = get_s3_client().get_object(Bucket=BACKUP_S3_BUCKET, Key=s3_key)
    except ClientError as e:
        if e.response['Error']['Code'] in ('NoSuchKey', '404'):
            raise BackupNotFoundError(f"Backup not found: {s3_key}")
        logger.exception(f"Failed to download backup {s3_key}")
        raise BackupStorageError(f"Could not download backup: {e}")
    except BotoCoreError as e:
        logger.exception(f"Failed to download backup {s3_key}")
        raise BackupStorageError(f"Could not download backup: {e}")
    return json.loads(response["Body"].read().decode("utf-8"))


def delete_backup(key: str) -> Dict[str, Any]:
    s3_key = _full_key(key)
    try:
        get_s3_client().delete_object(Bucket=BACKUP_S3_BUCKET, Key=s3_key)
    except (ClientError, BotoCoreError) as e:
        logger.exception(f"Failed to delete backup {s3_key}")
        raise BackupStorageError(f"Could not delete backup: {e}")
    logger.info(f"Deleted backup s3://{BACKUP_S3_BUCKET}/{s3_key}")
    return {"success": True}


def check_connection() -> Dict[str, Any]:
    try:
        get_s3_client().head_bucket(Bucket=BACKUP_S3_BUCKET)
        return {"connected": True, "bucket": BACKUP_S3_BUCKET}
    except (ClientError, BotoCoreError) as e:
        logger.warning(f"Backup bucket {BACKUP_S3_BUCKET} is not reachable: {e}")
        return {"connected": False, "bucket": BACKUP_S3_BUCKET, "error": "Backup storage is not reachable"}
