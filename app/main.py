# -*- coding: utf-8 -*-
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from app.document_store import DocumentStore, get_document_store
from app.event_log import EventLog
from app.generation import AdmissionGate, ImageGenerator, generate_image_from_scribble
from app.logging_setup import configure_logging
from app.prediction_client import PredictionClient
from app.rpc import RPC_PREFIX, CallTrace, RPCError, install_error_handlers, ok, validation_message
from app.schemas import (
    DocumentSnapshot, GenerateImageRequest, GenerateImageResponse,
    Health, RPCResponse, SaveDocumentResponse,
)
from app.settings import get_settings

log = logging.getLogger(__name__)

# ------------------------------ Environment --------------------------------- #
settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Scribble Board Gateway", version="0.3.0")

# CORS configuration (development friendly).
# Supported modes:
#   1) CORS_ORIGINS="*"          -> allow all origins, credentials disabled.
#   2) CORS_ORIGINS empty         -> allow localhost/127.0.0.1 on any port.
#   3) CORS_ORIGINS=a,b,c         -> allow only the listed origins.
if settings.cors_origins == "*":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
elif settings.cors_origins:
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^http://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

EVENTS = EventLog(base_dir=settings.logs_dir, enabled=settings.log_io)
install_error_handlers(app, EVENTS)

_GATE = AdmissionGate(settings.max_concurrent_generations)


# ------------------------------ Dependencies --------------------------------- #
def get_image_generator() -> ImageGenerator:
    return PredictionClient.from_settings(settings)


def get_admission_gate() -> AdmissionGate:
    return _GATE


# ------------------------------ Probes --------------------------------- #
@app.get("/health", response_model=Health)
def health():
    return Health(status="ok", model=settings.model_version, base_url=settings.replicate_base_url)


@app.get(f"{RPC_PREFIX}/health", response_model=RPCResponse[str])
def rpc_health():
    return ok("ok")


# ------------------------------ document.* --------------------------------- #
@app.get(f"{RPC_PREFIX}/document.getDocument", response_model=RPCResponse[Optional[Dict[str, Any]]])
def get_document(store: DocumentStore = Depends(get_document_store)):
    with CallTrace(EVENTS, "document.getDocument", "query"):
        doc = store.get()
        log.info("Returning stored document (%s)", "empty" if doc is None else f"{len(doc.get('store') or {})} records")
        return ok(doc)


@app.post(
    f"{RPC_PREFIX}/document.saveDocument",
    response_model=RPCResponse[SaveDocumentResponse],
    response_model_exclude_none=True,
)
def save_document(body: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_document_store)):
    """Replace the shared document. Malformed payloads are rejected and the stored one is kept."""
    with CallTrace(EVENTS, "document.saveDocument", "mutation"):
        try:
            snapshot = DocumentSnapshot.model_validate(body)
        except ValidationError as exc:
            raise RPCError("BAD_REQUEST", validation_message(exc.errors())) from exc
        try:
            # NaN/Infinity parse from the request but cannot be served back as JSON.
            json.dumps(body, allow_nan=False)
        except ValueError as exc:
            raise RPCError("BAD_REQUEST", "Document contains non-finite numbers (NaN or Infinity).") from exc
        log.info("Saving document: schemaVersion=%s, %d records", snapshot.schema_.schemaVersion, len(snapshot.store))
        try:
            # The raw payload is stored so records round-trip untouched.
            store.set(body)
        except Exception:
            log.exception("Document save failed")
            return ok(SaveDocumentResponse(success=False, error="Failed to save document on server. Check server logs."))
        return ok(SaveDocumentResponse(success=True))


# ------------------------------ ai.* --------------------------------- #
@app.post(f"{RPC_PREFIX}/ai.generateImageFromScribble", response_model=RPCResponse[GenerateImageResponse])
async def generate_from_scribble(
    body: GenerateImageRequest,
    generator: ImageGenerator = Depends(get_image_generator),
    gate: AdmissionGate = Depends(get_admission_gate),
):
    """
    SVG scribble + prompt -> hosted model -> result image URL.
    Any pipeline failure surfaces as INTERNAL_SERVER_ERROR carrying the most specific message.
    """
    with CallTrace(EVENTS, "ai.generateImageFromScribble", "mutation"):
        image_url = await generate_image_from_scribble(
            body.svgString,
            body.prompt,
            body.scale,
            client=generator,
            gate=gate,
            raster_size=settings.raster_size,
        )
        return ok(GenerateImageResponse(imageUrl=image_url))


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
