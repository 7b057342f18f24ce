"""Attachment storage: local disk or an S3-compatible bucket, selected by settings."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from ..settings import settings

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads"
ALLOWED_EXTENSIONS = {
    "jpeg", "jpg", "png", "gif", "pdf", "doc", "docx", "xls", "xlsx",
    "ppt", "pptx", "txt", "mp4", "mov", "avi", "mp3", "wav",
}
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
    "audio/mpeg",
    "audio/wav",
    "audio/x-wav",
}


class UnsupportedFileType(ValueError):
    pass


@dataclass(frozen=True)
class StoredFile:
    url: str
    key: str


def validate_file(file_name: str, content_type: str) -> None:
    extension = Path(file_name).suffix.lower().lstrip(".")
    mime_type = content_type.split(";", 1)[0].strip().lower()
    if extension not in ALLOWED_EXTENSIONS or mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedFileType(
            "invalid file type; only images, documents, videos and audio files are allowed"
        )


def build_storage_name(file_name: str) -> str:
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    return f"file-{suffix}{Path(file_name).suffix.lower()}"


def get_s3_client() -> BaseClient:
    endpoint_url = settings.s3_endpoint_url.rstrip("/") if settings.s3_endpoint_url else None
    return boto3.client(
        "s3",
        region_name=settings.s3_region or None,
        aws_access_key_id=settings.aws_access_key_id or None,
        aws_secret_access_key=settings.aws_secret_access_key or None,
        endpoint_url=endpoint_url,
    )


def _s3_object_url(key: str) -> str:
    bucket = settings.s3_bucket
    if settings.s3_endpoint_url:
        return f"{settings.s3_endpoint_url.rstrip('/')}/{bucket}/{key}"
    if settings.s3_region:
        return f"https://{bucket}.s3.{settings.s3_region}.amazonaws.com/{key}"
    return f"https://{bucket}.s3.amazonaws.com/{key}"


def store_file(file_name: str, content_type: str, stream: BinaryIO) -> StoredFile:
    storage_name = build_storage_name(file_name)
    stream.seek(0)
    if settings.upload_storage == "s3":
        key = f"{settings.s3_key_prefix.strip('/')}/{storage_name}"
        get_s3_client().upload_fileobj(stream, settings.s3_bucket, key, ExtraArgs={"ContentType": content_type})
        logger.info("stored attachment %s in bucket %s", key, settings.s3_bucket)
        return StoredFile(url=_s3_object_url(key), key=key)

    directory = Path(settings.upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / storage_name, "wb") as handle:
        handle.write(stream.read())
    logger.info("stored attachment %s on local disk", storage_name)
    return StoredFile(url=f"{LOCAL_URL_PREFIX}/{storage_name}", key=storage_name)


def discard_file(stored: StoredFile) -> None:
    """Best-effort removal of an object whose database record was never committed."""
    try:
        if settings.upload_storage == "s3":
            get_s3_client().delete_object(Bucket=settings.s3_bucket, Key=stored.key)
        else:
            (Path(settings.upload_dir) / stored.key).unlink(missing_ok=True)
    except (OSError, BotoCoreError, ClientError):
        logger.warning("could not discard orphaned attachment %s", stored.key, exc_info=True)
        return
    logger.info("discarded orphaned attachment %s", stored.key)
