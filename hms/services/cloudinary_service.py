from dataclasses import dataclass
import io
import os
import time

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from loguru import logger
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from hms.core.config import settings
from hms.core.exceptions import (
    ExternalServiceError,
    ValidationError,
    handle_external_service_error
)

# Configure Cloudinary
if settings.CLOUDINARY_CLOUD_NAME:
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True
    )


@dataclass(frozen=True)
class StoredFile:
    url: str
    key: str
    file_name: str


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or "")[1].lstrip(".").lower()


def _too_large() -> ValidationError:
    limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
    return ValidationError(
        message=f"File too large. Maximum size is {limit_mb}MB.",
        errors=[{"field": "file", "message": f"File exceeds {limit_mb}MB"}]
    )


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file, never buffering more than one byte past the size limit"""
    if file.size is not None and file.size > settings.MAX_UPLOAD_SIZE:
        raise _too_large()

    content = await file.read(settings.MAX_UPLOAD_SIZE + 1)
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise _too_large()
    return content


def validate_upload(file_name: str, size: int) -> None:
    """Reject files by type and size before anything is sent to storage"""
    extension = file_extension(file_name)
    if extension not in settings.ALLOWED_UPLOAD_EXTENSIONS:
        raise ValidationError(
            message="Invalid file type. Only PDF, images, Word and Excel files are allowed.",
            errors=[{"field": "file", "message": f"Extension '{extension or 'none'}' is not allowed"}]
        )

    if size > settings.MAX_UPLOAD_SIZE:
        raise _too_large()

    if size == 0:
        raise ValidationError(
            message="Uploaded file is empty.",
            errors=[{"field": "file", "message": "File is empty"}]
        )


class CloudinaryStorage:
    """Private object storage for lab report files"""

    service_name = "cloudinary"

    def _ensure_configured(self) -> None:
        if not settings.CLOUDINARY_CLOUD_NAME:
            raise ExternalServiceError(
                message="Object storage is not configured",
                error_code="STORAGE_NOT_CONFIGURED"
            )

    async def upload(self, content: bytes, file_name: str, folder: str = None) -> StoredFile:
        """
        Upload a file as a private asset.

        The returned key encodes the Cloudinary resource type and public id,
        which is everything needed to sign a download link later.
        """
        self._ensure_configured()
        stem = os.path.splitext(os.path.basename(file_name))[0]
        public_id = f"{int(time.time() * 1000)}-{stem}"

        try:
            response = await run_in_threadpool(
                cloudinary.uploader.upload,
                io.BytesIO(content),
                public_id=public_id,
                folder=folder or settings.UPLOAD_FOLDER,
                resource_type="auto",
                type="private"
            )
        except Exception as e:
            raise handle_external_service_error(e, self.service_name, "upload")

        logger.info(f"Uploaded {file_name} to storage as {response.get('public_id')}")
        return StoredFile(
            url=response.get("secure_url"),
            key=f"{response.get('resource_type', 'raw')}:{response.get('public_id')}",
            file_name=file_name
        )

    async def signed_url(self, key: str, file_name: str, expires_in: int = None) -> str:
        """Build a time-limited download link for a private asset"""
        self._ensure_configured()
        resource_type, _, public_id = key.partition(":")
        expires_in = expires_in or settings.DOWNLOAD_URL_EXPIRE_SECONDS
        # Raw assets keep their extension inside the public id
        file_format = "" if resource_type == "raw" else file_extension(file_name)

        try:
            return await run_in_threadpool(
                cloudinary.utils.private_download_url,
                public_id,
                file_format,
                resource_type=resource_type,
                type="private",
                expires_at=int(time.time()) + expires_in
            )
        except Exception as e:
            raise handle_external_service_error(e, self.service_name, "signed_url")


storage = CloudinaryStorage()
