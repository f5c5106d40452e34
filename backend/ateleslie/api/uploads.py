"""
Upload Gate
Stages multipart event images on disk before the handler runs.
"""

import logging
import secrets
from typing import AsyncIterator, List, Optional

from fastapi import Depends, File, UploadFile

from ateleslie.config import settings
from ateleslie.exceptions import BadRequestError
from ateleslie.services.images import ImageService, StagedUpload, get_image_service

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


async def _stage(upload: UploadFile, service: ImageService) -> StagedUpload:
    content_type = (upload.content_type or "").lower()
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
    if extension is None:
        raise BadRequestError("Invalid file type. Only JPEG, PNG and WebP images are allowed.")

    filename = f"{secrets.token_hex(8)}{extension}"
    path = service.staging_dir / filename
    staged = StagedUpload(
        path=path,
        filename=filename,
        original_name=upload.filename or filename,
        content_type=content_type,
        size=0,
    )

    with open(path, "wb") as out:
        while chunk := await upload.read(CHUNK_SIZE):
            staged.size += len(chunk)
            if staged.size > service.max_bytes:
                out.close()
                service.discard(staged)
                raise BadRequestError(
                    f"Image '{staged.original_name}' exceeds the maximum size of "
                    f"{service.max_bytes // (1024 * 1024)} MB"
                )
            out.write(chunk)

    return staged


async def receive_images(
    images: Optional[List[UploadFile]] = File(None),
    service: ImageService = Depends(get_image_service),
) -> AsyncIterator[List[StagedUpload]]:
    """
    Validate and stage the ``images`` field.
    Staged files still on disk when the request finishes are removed.
    """
    uploads = [upload for upload in images or [] if upload.filename]
    if len(uploads) > settings.max_upload_files:
        raise BadRequestError(f"Too many files. Maximum is {settings.max_upload_files} images")

    service.ensure_directories()
    staged: List[StagedUpload] = []
    try:
        for upload in uploads:
            staged.append(await _stage(upload, service))
    except BadRequestError:
        for file in staged:
            service.discard(file)
        raise

    try:
        yield staged
    finally:
        for file in staged:
            if file.path.exists():
                logger.debug(f"Removing unprocessed upload {file.path}")
                service.discard(file)
