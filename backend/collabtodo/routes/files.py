import mimetypes
from fastapi import APIRouter, Response, Depends
from fastapi.responses import RedirectResponse

from ..errors import NotFound
from ..storage.factory import get_storage

router = APIRouter(prefix="/api/files", tags=["files"])

@router.get("/{key}", summary="Download a profile picture or redirect to S3")
def download_file(key: str, storage = Depends(get_storage)):
    url = storage.get_file_url(key)
    if url:
        return RedirectResponse(url=url, status_code=307)

    try:
        with storage.open(key) as f:
            data = f.read()
    except FileNotFoundError:
        raise NotFound("File not found")

    content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    headers = {}
    if not content_type.startswith("image/"):
        headers["Content-Disposition"] = f'attachment; filename="{key}"'
    return Response(content=data, media_type=content_type, headers=headers)
