# cardledger/api/files.py

import mimetypes
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from cardledger.api.deps import get_file_store
from cardledger.config import config

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/signed-url")
def create_signed_url(
    path: str = Query(..., description="Stored receipt path, e.g. company_3/abc_receipt.pdf"),
    ttl: int = Query(config.SIGNED_URL_TTL, ge=1, le=7 * 24 * 3600),
    files=Depends(get_file_store),
):
    return {"url": files.create_signed_url(path, ttl), "expires_in": ttl}


@router.get("/download")
def download(token: str = Query(...), files=Depends(get_file_store)) -> Response:
    path = files.verify_token(token)
    content = files.read(path)
    media_type, _ = mimetypes.guess_type(path)
    filename = PurePosixPath(path).name
    return Response(
        content=content,
        media_type=media_type or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
