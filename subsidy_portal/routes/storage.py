"""
Public file endpoint backing the URLs stored on client documents
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..dependencies import Services, get_services
from ..services.errors import StorageError

router = APIRouter(prefix="/storage/v1/object/public", tags=["storage"])


@router.get("/{bucket}/{path:path}")
async def download_file(bucket: str, path: str, services: Services = Depends(get_services)):
    """
    Download a stored file by bucket and path
    """
    try:
        content = await services.object_store.download(bucket, path)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=e.message)

    if content is None:
        raise HTTPException(status_code=404, detail=f"File not found: {bucket}/{path}")

    filename = path.rsplit("/", 1)[-1]
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
