from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from typing import List, Optional
import logging
import os

from file_upload import (
    UPLOAD_SUBDIR, UploadTooLarge, UploadTypeNotAllowed, delete_file, resolve_path, save_upload
)
from schemas import MessageResponse, Resource as ResourceSchema, User
from storage import Storage
from dependencies import get_storage, require_admin, require_user, validate_id

logger = logging.getLogger(__name__)

router = APIRouter()
uploads_router = APIRouter()

def existing_file(relative_path: str) -> Optional[str]:
    try:
        full_path = resolve_path(relative_path)
    except ValueError:
        logger.error(f"Refusing to serve path outside the upload mount: {relative_path}")
        return None
    return full_path if os.path.isfile(full_path) else None

@router.get("/events/{event_id}/resources", response_model=List[ResourceSchema])
async def get_event_resources(event_id: str, storage: Storage = Depends(get_storage)):
    validate_id(event_id, "event")
    if not storage.get_event(event_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return storage.get_resources_by_event_id(event_id)

@router.post(
    "/events/{event_id}/resources",
    response_model=ResourceSchema,
    status_code=status.HTTP_201_CREATED
)
async def upload_resource(
    event_id: str,
    file: Optional[UploadFile] = File(None),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(require_admin)
):
    """Attach one file to an event (admin only)"""
    validate_id(event_id, "event")
    if not storage.get_event(event_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    try:
        stored = save_upload(file)
    except UploadTypeNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UploadTooLarge as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))

    try:
        resource = storage.create_resource(event_id, stored, uploaded_by_id=current_user.id)
    except Exception:
        # The file is on disk but has no record: remove it before failing
        try:
            delete_file(stored.file_path)
        except OSError as e:
            logger.error(f"Could not remove orphaned upload {stored.file_path}: {e}")
        raise

    logger.info(f"Resource {resource.id} ({resource.original_name}) added to event {event_id}")
    return resource

@router.get("/resources/{resource_id}/download")
async def download_resource(resource_id: str, storage: Storage = Depends(get_storage)):
    validate_id(resource_id, "resource")
    resource = storage.get_resource(resource_id)
    if not resource:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource record not found"
        )

    full_path = existing_file(resource.file_path)
    if not full_path:
        logger.error(f"File missing for resource {resource_id}: {resource.file_path}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on server storage."
        )
    return FileResponse(full_path, media_type=resource.file_type, filename=resource.original_name)

@router.delete("/resources/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: str,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(require_admin)
):
    validate_id(resource_id, "resource")
    resource = storage.get_resource(resource_id)
    if not resource:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource not found"
        )

    # File removal failures do not block deleting the record
    try:
        delete_file(resource.file_path)
    except (OSError, ValueError) as e:
        logger.error(
            f"Failed to delete file {resource.file_path}: {e}. Proceeding to delete database record."
        )

    storage.delete_resource(resource_id)
    return {"message": "Resource deleted successfully"}

@uploads_router.get("/uploads/{filename}")
async def serve_upload(filename: str, current_user: User = Depends(require_user)):
    """Stored files by name, for signed-in users only"""
    if filename != os.path.basename(filename) or filename.startswith("."):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    full_path = existing_file(f"{UPLOAD_SUBDIR}/{filename}")
    if not full_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(full_path)
