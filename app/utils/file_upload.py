# app/utils/file_upload.py

import logging
import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile

from app.core.config import settings

logger = logging.getLogger(__name__)

# Allowed file extensions
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB


class FileUploadService:
    """Stores live class thumbnails under the storage directory with UUID names."""

    def __init__(self, base_storage_path: str = "storage"):
        """
        Args:
            base_storage_path: Base directory for file storage (relative to project root)
        """
        self.base_storage_path = Path(base_storage_path)

    def _get_file_extension(self, filename: str) -> str:
        return Path(filename).suffix.lower()

    def _validate_image(self, file: UploadFile) -> None:
        if not file.filename:
            raise HTTPException(status_code=400, detail="No filename provided")

        extension = self._get_file_extension(file.filename)
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}",
            )

    async def save_image(
        self, file: UploadFile, folder: str = "live_classes"
    ) -> tuple[str, str]:
        """
        Save an uploaded image with UUID naming.

        Args:
            file: The uploaded file
            folder: Subfolder within storage

        Returns:
            Tuple of (uuid_filename, relative_path)

        Raises:
            HTTPException: If file validation fails or save fails
        """
        self._validate_image(file)

        try:
            contents = await file.read()
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"Error reading file: {str(e)}")
        finally:
            await file.seek(0)

        if len(contents) > MAX_IMAGE_SIZE:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds maximum allowed size of {MAX_IMAGE_SIZE / (1024*1024)}MB",
            )
        if not contents:
            raise HTTPException(status_code=400, detail="Empty file uploaded")

        uuid_filename = f"{uuid.uuid4()}{self._get_file_extension(file.filename)}"
        folder_path = self.base_storage_path / folder
        folder_path.mkdir(parents=True, exist_ok=True)

        try:
            (folder_path / uuid_filename).write_bytes(contents)
        except OSError as e:
            raise HTTPException(status_code=500, detail=f"Error saving file: {str(e)}")

        relative_path = f"{folder}/{uuid_filename}"
        logger.info(f"Stored thumbnail {relative_path}")
        return uuid_filename, relative_path

    def delete_image(self, relative_path: str) -> bool:
        """
        Best-effort delete of a stored image. Failures are logged, never raised.

        Args:
            relative_path: Relative path to the file (e.g., 'live_classes/uuid.jpg')
        """
        try:
            file_path = self.base_storage_path / relative_path
            if file_path.exists() and file_path.is_file():
                file_path.unlink()
                logger.info(f"Deleted thumbnail {relative_path}")
                return True
            return False
        except OSError as e:
            logger.error(f"Failed to delete thumbnail {relative_path}: {e}")
            return False


# Create a singleton instance
file_upload_service = FileUploadService(settings.upload_dir)
