import logging
import os
import re
import time
from botocore.exceptions import ClientError
from fastapi import HTTPException
from app.core.time_utils import utcnow
from app.modules.uploads.storage import ObjectStorage
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MAX_FILE_SIZE = 5 * 1024 * 1024
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def validate_image(content_type: Optional[str], size: int) -> None:
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Only JPG, PNG and WebP images can be uploaded")
    if size > MAX_FILE_SIZE:
        raise HTTPException(status_code=400, detail="File size must be 5MB or less")
    if size == 0:
        raise HTTPException(status_code=400, detail="File is empty")


def sanitize_filename(filename: Optional[str]) -> str:
    base = os.path.basename(filename or "") or "upload"
    cleaned = _UNSAFE_NAME_CHARS.sub("_", base)
    return cleaned[-100:]


def file_extension(filename: Optional[str], content_type: Optional[str]) -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if ext:
        return ext
    return (content_type or "image/jpeg").split("/")[-1]


class UploadService:
    def __init__(self, storage: ObjectStorage):
        self.storage = storage

    def upload_image(
        self,
        user_id: str,
        content: bytes,
        filename: Optional[str],
        content_type: Optional[str],
        bucket: Optional[str] = None,
    ) -> Dict[str, Any]:
        validate_image(content_type, len(content))
        now = utcnow()
        key = f"{now.year}/{now.month}/{user_id}_{int(time.time() * 1000)}.{file_extension(filename, content_type)}"
        try:
            url = self.storage.upload_file(content, key, content_type, bucket=bucket)
        except ClientError as e:
            if "bucket" in str(e).lower():
                raise HTTPException(status_code=500, detail="Storage bucket is not configured")
            raise HTTPException(status_code=500, detail="Failed to upload image")
        logger.info("User %s uploaded %s (%d bytes)", user_id, key, len(content))
        return {
            "url": url,
            "thumbnail_url": f"{url}?width=320&height=240&resize=cover",
            "path": key,
            "size": len(content),
            "type": content_type,
            "name": filename,
        }

    def delete_image(self, user_id: str, path: str, bucket: Optional[str] = None) -> Dict[str, str]:
        # Object keys embed the uploader's id
        if user_id not in path:
            raise HTTPException(status_code=403, detail="Not allowed to delete this file")
        if not self.storage.delete_file(path, bucket=bucket):
            raise HTTPException(status_code=500, detail="Failed to delete image")
        return {"message": "Image deleted"}
