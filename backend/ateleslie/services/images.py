"""
Image Service
Stores uploaded event images and generates proportional thumbnails at fixed breakpoints.
"""

import os
import shutil
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from PIL import Image, UnidentifiedImageError

from ateleslie.config import settings
from ateleslie.exceptions import BadRequestError, InternalServerError

logger = logging.getLogger(__name__)


@dataclass
class StagedUpload:
    """An uploaded file written to the staging directory, not yet processed."""
    path: Path
    filename: str
    original_name: str
    content_type: str
    size: int


class ImageService:

    def __init__(
        self,
        root_dir: str,
        thumbnail_sizes: Mapping[str, int],
        max_bytes: int,
        allowed_formats: Iterable[str],
        max_dimension: int,
    ):
        self.root = Path(root_dir)
        self.staging_dir = self.root / "tmp"
        self.original_dir = self.root / "events" / "original"
        self.thumbnails_dir = self.root / "events" / "thumbnails"
        # Smallest breakpoint first
        self.thumbnail_sizes = dict(sorted(thumbnail_sizes.items(), key=lambda item: item[1]))
        self.max_bytes = max_bytes
        self.allowed_formats = {f.lower() for f in allowed_formats}
        self.max_dimension = max_dimension

    @classmethod
    def from_settings(cls) -> "ImageService":
        return cls(
            root_dir=settings.upload_dir,
            thumbnail_sizes=settings.thumbnail_sizes,
            max_bytes=settings.max_image_bytes,
            allowed_formats=settings.allowed_image_formats,
            max_dimension=settings.max_image_dimension,
        )

    def ensure_directories(self) -> None:
        for directory in (self.staging_dir, self.original_dir, self.thumbnails_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def _validate(self, file: Optional[StagedUpload]):
        """Return (width, height) of a valid image or raise BadRequestError."""
        if file is None or not file.path.exists():
            raise BadRequestError("No image file provided")

        size = file.path.stat().st_size
        if size > self.max_bytes:
            raise BadRequestError(
                f"Image '{file.original_name}' exceeds the maximum size of {self.max_bytes // (1024 * 1024)} MB"
            )

        try:
            with Image.open(file.path) as img:
                image_format = (img.format or "").lower()
                width, height = img.size
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
            raise BadRequestError(f"File '{file.original_name}' is not a valid image")

        if image_format not in self.allowed_formats:
            raise BadRequestError(
                "Invalid file type. Only JPEG, PNG and WebP images are allowed."
            )

        if width > self.max_dimension or height > self.max_dimension:
            raise BadRequestError(
                f"Image dimensions {width}x{height} exceed the maximum of {self.max_dimension} pixels"
            )

        return width, height

    def process_image(self, file: Optional[StagedUpload]) -> Dict[str, Any]:
        """
        Validate a staged upload, store the original and generate thumbnails.

        Breakpoints not smaller than the original width reuse the original
        descriptor instead of upscaling. If generation fails, every file
        created by this call is removed before the error propagates.

        Returns:
            dict with ``original`` and ``thumbnails`` descriptors
        """
        try:
            width, height = self._validate(file)
        except BadRequestError:
            if file is not None:
                self.discard(file)
            raise

        self.ensure_directories()

        original_filename = f"original_{file.filename}"
        original_path = self.original_dir / original_filename
        created: List[Path] = []

        original = {
            "path": original_path.as_posix(),
            "filename": original_filename,
            "width": width,
            "height": height,
        }
        image_info = {"original": original, "thumbnails": {}}

        try:
            shutil.move(str(file.path), str(original_path))
            created.append(original_path)

            with Image.open(original_path) as img:
                source = img if img.mode in ("RGB", "L") else img.convert("RGB")
                for size_name, target_width in self.thumbnail_sizes.items():
                    if target_width >= width:
                        image_info["thumbnails"][size_name] = dict(original)
                        continue

                    target_height = max(1, int(target_width * height / width + 0.5))
                    thumb_filename = f"{size_name}_{Path(file.filename).stem}.jpg"
                    thumb_path = self.thumbnails_dir / thumb_filename

                    resized = source.resize((target_width, target_height), Image.Resampling.LANCZOS)
                    created.append(thumb_path)
                    resized.save(thumb_path, "JPEG", quality=80)

                    image_info["thumbnails"][size_name] = {
                        "path": thumb_path.as_posix(),
                        "filename": thumb_filename,
                        "width": target_width,
                        "height": target_height,
                    }
        except Exception as e:
            logger.exception(f"Thumbnail generation failed for {file.original_name}")
            for path in created:
                self._remove_file(path)
            raise InternalServerError("Failed to process image") from e

        logger.info(
            f"Processed image {file.original_name} ({width}x{height}) -> {original_filename}"
        )
        return image_info

    def delete_image(self, image_info: Optional[Mapping[str, Any]]) -> List[str]:
        """
        Delete an image and its thumbnails.
        Each distinct path is removed once; thumbnails aliasing the original are not deleted twice.

        Returns:
            The distinct paths that were targeted.
        """
        paths: List[str] = []
        if not image_info:
            return paths

        original = image_info.get("original") or {}
        if original.get("path"):
            paths.append(original["path"])

        for thumbnail in (image_info.get("thumbnails") or {}).values():
            path = (thumbnail or {}).get("path")
            if path and path not in paths:
                paths.append(path)

        for path in paths:
            self._remove_file(Path(path))

        return paths

    def delete_images(self, images: Iterable[Mapping[str, Any]]) -> None:
        for image_info in images:
            self.delete_image(image_info)

    def discard(self, file: StagedUpload) -> None:
        """Remove a staged upload that will not be processed."""
        self._remove_file(file.path)

    def _remove_file(self, path: Path) -> bool:
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")
            return False


@lru_cache()
def get_image_service() -> ImageService:
    """Process-wide image service. Also used as a FastAPI dependency."""
    return ImageService.from_settings()
