"""Files: serve local-backend objects behind signed URLs (GET with e + token)."""
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from filestore.core.config import get_settings
from filestore.core.security import verify_file_token
from filestore.storage import LocalStorage, StorageError, get_storage

router = APIRouter(prefix="/files", tags=["files"])


def _local_storage() -> LocalStorage:
    storage = get_storage()
    if not isinstance(storage, LocalStorage):
        # Only the local backend is served from here; cloud backends sign their own URLs
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return storage


@router.get("/{path:path}")
async def stream_file(path: str, e: str | None = None, token: str | None = None):
    settings = get_settings()
    storage = _local_storage()
    try:
        key = storage.key(path)
        file_path = storage.resolve(path)
    except StorageError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    if not settings.local_public_read:
        if e is None or token is None or not verify_file_token(key, e, token):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    if not file_path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(
        file_path,
        headers={
            "Cache-Control": "private, no-store",
            "Content-Disposition": "inline",
        },
    )
