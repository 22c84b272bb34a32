"""
FastAPI layer exposing the batch transformation pipeline.

Endpoints:
 - GET /health
 - POST /api/image-batch
 - GET /api/image-preview?key=...
 - DELETE /api/image-preview?key=...
"""

from typing import List, Optional

from fastapi import FastAPI, File, Form, Query, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import Settings, get_settings
from .core.exceptions import (
    BatchFailedError,
    NotFoundError,
    ParseError,
    StorageError,
    ValidationError,
)
from .core.factories import PipelineFactory, StagingStoreFactory
from .core.logging_config import configure_from_settings
from .core.models import BatchRequest, ImageItem, ItemResult
from .core.protocols import StagingStoreProtocol, TransformerProtocol


def _artifact_entry(result: ItemResult) -> dict:
    return {
        "originalName": result.original_name,
        "filename": result.artifact.key,
        "tempPath": result.artifact.key,
    }


def _result_entry(result: ItemResult) -> dict:
    return {
        "index": result.index,
        "originalName": result.original_name,
        "success": result.success,
        "filename": result.artifact.key if result.artifact else None,
        "error": result.error or None,
        "errorType": result.error_type or None,
    }


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[StagingStoreProtocol] = None,
    transformer: Optional[TransformerProtocol] = None,
) -> FastAPI:
    """Build the application around an explicitly configured staging store."""
    settings = settings or get_settings()
    logger = configure_from_settings(settings.log_level, settings.log_format)

    store = store or StagingStoreFactory.create_store(settings)
    orchestrator = PipelineFactory.create_orchestrator(
        settings=settings, store=store, transformer=transformer
    )
    reader = PipelineFactory.create_reader(store)

    app = FastAPI(title="Image Batch Service", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.store = store

    @app.exception_handler(ValidationError)
    @app.exception_handler(ParseError)
    async def bad_request(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "File not found"})

    @app.exception_handler(BatchFailedError)
    async def batch_failed(request: Request, exc: BatchFailedError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": str(exc),
                "results": [_result_entry(r) for r in exc.results],
            },
        )

    @app.exception_handler(StorageError)
    async def storage_failed(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Staging failure: {exc}")
        return JSONResponse(status_code=500, content={"error": "Staging storage unavailable"})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/image-batch")
    async def image_batch(
        images: Optional[List[UploadFile]] = File(None),
        options: Optional[str] = Form(None),
    ):
        items = []
        for index, upload in enumerate(images or []):
            items.append(
                ImageItem(
                    raw_bytes=await upload.read(),
                    original_name=upload.filename or "",
                    index=index,
                )
            )

        request = BatchRequest(images=items, options_text=options)
        batch = await run_in_threadpool(orchestrator.process, request)

        return {
            "images": [_artifact_entry(r) for r in batch.results if r.success],
            "results": [_result_entry(r) for r in batch.results],
        }

    @app.get("/api/image-preview")
    def image_preview(key: Optional[str] = Query(None)):
        if not key:
            return JSONResponse(status_code=400, content={"error": "Missing key"})
        content, content_type = reader.read(key)
        return Response(
            content=content,
            media_type=content_type,
            headers={"Cache-Control": "no-cache"},
        )

    @app.delete("/api/image-preview", status_code=204)
    def delete_artifact(key: Optional[str] = Query(None)):
        if not key:
            return JSONResponse(status_code=400, content={"error": "Missing key"})
        store.delete(key)
        return Response(status_code=204)

    return app
