"""
Object storage endpoints.

``PUT`` uploads a raw request body to a bucket path (optionally
overwriting), ``public-url`` resolves the stable public reference, and
the root-level ``public_router`` serves stored objects.
"""

import asyncio
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import FileResponse

from speakcasually.core.models import PublicUrlResponse, UploadResponse
from speakcasually.services.storage.object_store import get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])
public_router = APIRouter(tags=["storage"])


@router.put("/{bucket}/{path:path}", response_model=UploadResponse)
async def upload_object(
    bucket: str,
    path: str,
    request: Request,
    upsert: bool = Query(False),
):
    """Store the raw request body at *bucket*/*path*."""
    data = await request.body()
    size = await asyncio.to_thread(get_object_store().upload, bucket, path, data, upsert=upsert)
    return UploadResponse(bucket=bucket, path=path, size=size)


@router.get("/{bucket}/{path:path}/public-url", response_model=PublicUrlResponse)
async def get_public_url(bucket: str, path: str):
    """Resolve the public reference of a stored object."""
    return PublicUrlResponse(public_url=get_object_store().public_url(bucket, path))


@public_router.get("/storage/{bucket}/{path:path}")
async def download_object(bucket: str, path: str):
    """Serve a stored object (the target of public references)."""
    file_path = get_object_store().open_path(bucket, path)
    return FileResponse(path=str(file_path), filename=file_path.name)
