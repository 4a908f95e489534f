import io
import logging
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.utils.exceptions import AppError

logger = logging.getLogger(__name__)


class StorageError(AppError):
    status_code = 500
    code = "SAVE_ERROR"


class LocalStorage:
    """Files under ``UPLOAD_DIR``; returned urls are ``uploads/<key>``."""

    def __init__(self, root: str):
        self.root = Path(root)

    def save(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error("Failed to save %s: %s", path, e)
            raise StorageError("Failed to save file")
        return f"uploads/{key}"

    def delete(self, url: Optional[str]) -> None:
        if not url or not url.startswith("uploads/"):
            return
        path = self.root / url[len("uploads/"):]
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to delete %s: %s", path, e)


class R2Storage:
    """Cloudflare R2 through the S3 API; returned urls are object keys."""

    def __init__(self, account_id: str, access_key_id: str, secret_access_key: str, bucket: str, client=None):
        self.bucket = bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
        )

    def save(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        try:
            self.client.upload_fileobj(
                io.BytesIO(data),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type or "application/octet-stream"},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("R2 upload of %s failed: %s", key, e)
            raise StorageError("Failed to save file")
        return key

    def delete(self, url: Optional[str]) -> None:
        if not url:
            return
        try:
            self.client.delete_object(Bucket=self.bucket, Key=url)
        except (BotoCoreError, ClientError) as e:
            logger.warning("R2 delete of %s failed: %s", url, e)


def build_storage(settings):
    if settings.STORAGE_BACKEND == "r2":
        return R2Storage(
            settings.R2_ACCOUNT_ID,
            settings.R2_ACCESS_KEY_ID,
            settings.R2_SECRET_ACCESS_KEY,
            settings.R2_BUCKET_NAME,
        )
    return LocalStorage(settings.UPLOAD_DIR)
