"""
Scan API Routes

Shelf photo upload: recognition, enrichment and cataloging in one call,
either as a single JSON report or as a stream of progress events.
"""

import asyncio
import io
import json
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import StreamingResponse
from loguru import logger
from PIL import Image

from arcana.api.dependencies import Settings, get_reconciler, get_settings
from arcana.api.middleware.error_handler import error_payload
from arcana.api.middleware.logging import record_scan_details
from arcana.api.schemas import ErrorResponse, ScanProgressSchema, ScanResponse
from arcana.exceptions import ArcanaException, PayloadTooLargeError, ValidationError
from arcana.scanning.pipeline import ShelfReconciler


router = APIRouter(prefix="/books", tags=["scan"])


async def read_image_upload(
    request: Request,
    image: UploadFile,
    settings: Settings,
) -> tuple[bytes, str]:
    """
    Read and check an uploaded shelf photo.

    Returns:
        (image bytes, MIME type)

    Raises:
        ValidationError: Unsupported type, empty or undecodable image
        PayloadTooLargeError: Image over the size limit
    """
    mime_type = (image.content_type or "").split(";")[0].strip().lower()
    allowed = settings.allowed_image_type_set
    if mime_type not in allowed:
        raise ValidationError(
            f"Unsupported image format: {mime_type or 'unknown'}",
            detail=f"Supported: {', '.join(sorted(allowed))}",
        )

    content = await image.read()
    record_scan_details(request, upload_kb=len(content) // 1024, mime_type=mime_type)

    if len(content) > settings.max_upload_bytes:
        raise PayloadTooLargeError(settings.max_upload_size_mb)

    if not content:
        raise ValidationError("Empty image upload")

    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
    except Exception as e:
        raise ValidationError("Could not decode image", detail=str(e)) from e

    logger.info(
        f"Processing image: {image.filename}, "
        f"size={len(content) // 1024}KB, type={mime_type}"
    )
    return content, mime_type


@router.post(
    "/scan",
    response_model=ScanResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid image"},
        413: {"model": ErrorResponse, "description": "Image too large"},
        502: {"model": ErrorResponse, "description": "Recognition failed"},
    },
)
async def scan_shelf(
    request: Request,
    image: UploadFile = File(..., description="Photo of a bookshelf"),
    settings: Settings = Depends(get_settings),
    reconciler: ShelfReconciler = Depends(get_reconciler),
) -> ScanResponse:
    """
    Scan a shelf photo and add the books found to the catalog.
    """
    content, mime_type = await read_image_upload(request, image, settings)
    report = await reconciler.reconcile_shelf(content, mime_type)
    record_scan_details(
        request,
        detected=report.stats.detected,
        added=report.stats.added,
        duplicates=report.stats.duplicates,
        skipped=report.stats.skipped,
    )
    return ScanResponse.from_report(report)


def _ndjson(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False) + "\n"


@router.post(
    "/scan/stream",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid image"},
        413: {"model": ErrorResponse, "description": "Image too large"},
    },
)
async def scan_shelf_stream(
    request: Request,
    image: UploadFile = File(..., description="Photo of a bookshelf"),
    settings: Settings = Depends(get_settings),
    reconciler: ShelfReconciler = Depends(get_reconciler),
):
    """
    Scan a shelf photo, streaming progress as newline-delimited JSON.

    Lines are {"type": "progress", ...} events followed by a final
    {"type": "result", "data": ...} or {"type": "error", ...}.
    """
    content, mime_type = await read_image_upload(request, image, settings)

    async def generate() -> AsyncGenerator[str, None]:
        queue: asyncio.Queue = asyncio.Queue()
        finished = object()

        async def run():
            try:
                return await reconciler.reconcile_shelf(content, mime_type, on_progress=queue.put)
            finally:
                await queue.put(finished)

        task = asyncio.create_task(run())
        try:
            while True:
                event = await queue.get()
                if event is finished:
                    break
                yield _ndjson(ScanProgressSchema.from_progress(event).model_dump(by_alias=True))

            try:
                report = await task
            except ArcanaException as e:
                yield _ndjson({"type": "error", **error_payload(e.message, e.code, e.detail)})
            except Exception as e:
                logger.error(f"Stream scan failed: {type(e).__name__}: {e}")
                yield _ndjson({
                    "type": "error",
                    **error_payload("Internal Server Error", "INTERNAL_ERROR", "An unexpected error occurred"),
                })
            else:
                yield _ndjson({
                    "type": "result",
                    "data": ScanResponse.from_report(report).model_dump(by_alias=True),
                })
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(
        generate(),
        media_type="application/x-ndjson",
    )
