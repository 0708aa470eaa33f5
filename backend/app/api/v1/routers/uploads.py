# app/api/v1/routers/uploads.py
"""
File upload endpoints.

Files are validated (MIME type allow-list, extension matching the MIME type,
size limit) and written through the configured storage backend under a
generated `<uuid>-<epoch ms><ext>` name.
"""
import logging
import time
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import FileResponse

from app.api.v1.deps import get_current_user, get_storage
from app.api.v1.responses import ok
from app.core.errors import BadRequest, ResourceNotFound
from app.core.security import utc_now
from app.models.user import User
from app.storage import AbstractStorage, is_safe_filename

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/upload", tags=["upload"])

# MIME type -> accepted extensions
ALLOWED_TYPES: dict[str, tuple[str, ...]] = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/gif": (".gif",),
    "image/webp": (".webp",),
    "application/pdf": (".pdf",),
    "text/plain": (".txt",),
    "application/msword": (".doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (".docx",),
}


def _validate_upload(upload: UploadFile) -> str:
    """Return the lower-cased extension of an acceptable upload, or raise BadRequest."""
    mimetype = upload.content_type or ""
    if mimetype not in ALLOWED_TYPES:
        raise BadRequest(f"File type {mimetype or 'unknown'} not allowed. Allowed types: {', '.join(ALLOWED_TYPES)}")
    extension = Path(upload.filename or "").suffix.lower()
    if extension not in ALLOWED_TYPES[mimetype]:
        raise BadRequest(f"File extension {extension or '(none)'} does not match MIME type {mimetype}")
    return extension


async def _read_upload(upload: UploadFile, max_size: int) -> tuple[str, bytes]:
    """Validate an upload and read its body, never buffering more than `max_size + 1` bytes."""
    extension = _validate_upload(upload)
    data = await upload.read(max_size + 1)
    if len(data) > max_size:
        raise BadRequest("File too large")
    return extension, data


def _store_upload(
    upload: UploadFile, extension: str, data: bytes, request: Request, storage: AbstractStorage, user: User
) -> dict:
    file_id = str(uuid.uuid4())
    category = "images" if upload.content_type.startswith("image/") else "documents"
    stored = storage.save(data, f"{file_id}-{int(time.time() * 1000)}{extension}", category)
    logger.info("[upload] %s stored %s (%d bytes)", user.id, stored.filename, stored.size)
    return {
        "id": file_id,
        "originalName": upload.filename,
        "filename": stored.filename,
        "mimetype": upload.content_type,
        "size": stored.size,
        "url": f"{request.app.state.settings.api_prefix}/upload/file/{stored.filename}",
        "uploadedAt": utc_now().isoformat(),
        "uploadedBy": str(user.id),
    }


@router.post("/single", status_code=status.HTTP_201_CREATED)
async def upload_single(
    request: Request,
    file: UploadFile | None = File(default=None),
    user: User = Depends(get_current_user),
    storage: AbstractStorage = Depends(get_storage),
):
    if file is None:
        raise BadRequest("No file uploaded")
    extension, data = await _read_upload(file, request.app.state.settings.max_upload_size)
    info = _store_upload(file, extension, data, request, storage, user)
    return ok("File uploaded successfully", {"file": info})


@router.post("/multiple", status_code=status.HTTP_201_CREATED)
async def upload_multiple(
    request: Request,
    files: list[UploadFile] | None = File(default=None),
    user: User = Depends(get_current_user),
    storage: AbstractStorage = Depends(get_storage),
):
    if not files:
        raise BadRequest("No files uploaded")
    max_files = request.app.state.settings.max_upload_files
    if len(files) > max_files:
        raise BadRequest(f"Too many files (maximum {max_files})")
    for upload in files:
        _validate_upload(upload)
    # Every file is read and size-checked before anything is written
    max_size = request.app.state.settings.max_upload_size
    accepted = []
    for upload in files:
        extension, data = await _read_upload(upload, max_size)
        accepted.append((upload, extension, data))
    infos = [_store_upload(upload, extension, data, request, storage, user) for upload, extension, data in accepted]
    return ok(f"{len(infos)} files uploaded successfully", {"files": infos, "count": len(infos)})


@router.get("/file/{filename}")
async def get_file(filename: str, storage: AbstractStorage = Depends(get_storage)):
    if not is_safe_filename(filename):
        raise BadRequest("Invalid filename")
    stored = storage.find(filename)
    if stored is None:
        raise ResourceNotFound("File not found")
    return FileResponse(stored.path, headers={"Cache-Control": "public, max-age=31536000"})


@router.delete("/file/{filename}")
async def delete_file(
    filename: str,
    user: User = Depends(get_current_user),
    storage: AbstractStorage = Depends(get_storage),
):
    if not is_safe_filename(filename):
        raise BadRequest("Invalid filename")
    if not storage.delete(filename):
        raise ResourceNotFound("File not found")
    logger.info("[upload] %s deleted %s", user.id, filename)
    return ok("File deleted successfully")


@router.get("/info")
async def upload_info(request: Request):
    settings = request.app.state.settings
    return ok("Upload configuration", {
        "maxFileSize": settings.max_upload_size,
        "maxFileSizeMB": settings.max_upload_size / 1024 / 1024,
        "maxFiles": settings.max_upload_files,
        "allowedMimeTypes": list(ALLOWED_TYPES),
        "allowedExtensions": [ext for exts in ALLOWED_TYPES.values() for ext in exts],
    })
