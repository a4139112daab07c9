import os
import uuid
from datetime import datetime
from mimetypes import guess_type

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
from slugify import slugify

from ..config import settings
from ..storage.blob_provider import BlobStorageProvider
from ..storage.local_provider import LocalStorageProvider
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/files", tags=["files"])


def get_storage() -> StorageProvider:
    """
    Get storage provider based on configuration.
    Uses LocalStorageProvider for local development when Azure Blob is not configured.
    """
    if settings.storage_provider == "blob" and settings.azure_blob_connection and settings.azure_blob_container:
        return BlobStorageProvider()
    return LocalStorageProvider()


PHOTO_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def checklist_photo_key(facility_id: int, assignment_id: int, item_id: int, original_name: str, content_type: str) -> str:
    """Storage key for a checklist photo. The extension follows the validated content type, never the client filename."""
    today = datetime.utcnow().strftime("%Y-%m-%d")
    year = datetime.utcnow().strftime("%Y")
    safe_name = slugify(os.path.splitext(original_name or "photo")[0]) or "photo"
    ext = PHOTO_EXTENSIONS[content_type]
    suffix = uuid.uuid4().hex[:8]
    return f"/cleaning/{year}/facility-{facility_id}/assignment-{assignment_id}/{today}_item-{item_id}_{safe_name}-{suffix}{ext}"


@router.get("/local/{file_path:path}")
def serve_local_file(file_path: str):
    """Serve files from local storage for development."""
    local_storage = LocalStorageProvider()
    file_path_obj = local_storage._get_path(file_path)

    # Ensure the file is within the storage directory
    storage_base = local_storage.base_dir.resolve()
    if not str(file_path_obj.resolve()).startswith(str(storage_base)):
        raise HTTPException(status_code=403, detail="Access denied")

    if not file_path_obj.exists():
        raise HTTPException(status_code=404, detail="File not found")

    content_type = guess_type(str(file_path_obj))[0] or "application/octet-stream"
    return FileResponse(str(file_path_obj), media_type=content_type)
