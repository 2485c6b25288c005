from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import FastAPI, File, Form, Header, Response, UploadFile
from fastapi.responses import JSONResponse
from starlette.requests import Request

from modeltransform.api.auth import authenticate, load_api_tokens, requires_auth
from modeltransform.api.middleware import AccessLogMiddleware, RequestIdMiddleware
from modeltransform.api.models import ApiError, HealthOut
from modeltransform.client.http import TRANSFORM_MODEL_PATH

log = logging.getLogger("modeltransform.api")

DEFAULT_FORMATS = ("bpmn", "dmn", "json", "xml", "yaml")


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Configuration for the stub transformation service."""

    max_upload_bytes: int = 25 * 1024 * 1024
    formats: FrozenSet[str] = frozenset(DEFAULT_FORMATS)


class ServiceError(Exception):
    """Rendered as a structured ApiError body."""

    def __init__(self, status_code: int, message_id: str, description: str):
        super().__init__(description)
        self.status_code = status_code
        self.message_id = message_id
        self.description = description


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Security notes:
    - Env vars are treated as trusted server configuration.

    """

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _env_formats(name: str) -> FrozenSet[str]:
    raw = os.environ.get(name, "")
    formats = frozenset(f.strip().lower() for f in raw.split(",") if f.strip())
    return formats or frozenset(DEFAULT_FORMATS)


def create_app() -> FastAPI:
    """Create the stub transformation service.

    It accepts the same multipart request as the real service and answers with
    the uploaded bytes unchanged. Useful for exercising the client end to end.
    """

    cfg = ServiceConfig(
        max_upload_bytes=_env_int("MODELTRANSFORM_MAX_UPLOAD_BYTES", 25 * 1024 * 1024),
        formats=_env_formats("MODELTRANSFORM_STUB_FORMATS"),
    )
    tokens = load_api_tokens()
    must_auth = requires_auth(tokens)

    log.setLevel(os.environ.get("MODELTRANSFORM_LOG_LEVEL", "INFO").upper())

    app = FastAPI(title="Model Transformation Stub", version="0.1")
    app.state.cfg = cfg
    app.state.must_auth = must_auth

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware)

    @app.exception_handler(ServiceError)
    async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        body = ApiError(message_id=exc.message_id, message_description=exc.description)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True))

    def _read_upload(upload: UploadFile) -> bytes:
        """Read an upload fully, enforcing the size cap."""

        chunks = []
        total = 0
        while True:
            chunk = upload.file.read(1024 * 1024)
            if not chunk:
                break
            total += len(chunk)
            if total > cfg.max_upload_bytes:
                raise ServiceError(413, "upload_too_large", "model exceeds the upload limit")
            chunks.append(chunk)
        return b"".join(chunks)

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(ok=True, auth_required=must_auth, formats=sorted(cfg.formats))

    @app.post(TRANSFORM_MODEL_PATH)
    def transform_model(
        request: Request,
        model: Optional[UploadFile] = File(default=None),
        targetformat: Optional[str] = Form(default=None),
        sourceformat: Optional[str] = Form(default=None),
        authorization: Optional[str] = Header(default=None),
    ) -> Response:
        if must_auth and not authenticate(authorization, tokens):
            raise ServiceError(401, "invalid_token", "the bearer token was not accepted")

        if model is None:
            raise ServiceError(400, "missing_model", "the 'model' file part is required")
        target = (targetformat or "").strip().lower()
        if not target:
            raise ServiceError(400, "missing_target_format", "the 'targetformat' field is required")
        request.state.target_format = target
        if target not in cfg.formats:
            raise ServiceError(
                400, "unsupported_target_format", f"target format '{target}' is not supported"
            )
        source = (sourceformat or "").strip().lower() or None
        if source is not None and source not in cfg.formats:
            raise ServiceError(
                400, "unsupported_source_format", f"source format '{source}' is not supported"
            )

        data = _read_upload(model)
        headers = {"X-Target-Format": target}
        if source:
            headers["X-Source-Format"] = source
        # Header values must stay latin-1 encodable.
        safe_name = os.path.basename(model.filename or "").encode("ascii", "ignore").decode()[:255]
        if safe_name:
            headers["X-Model-Filename"] = safe_name
        return Response(content=data, media_type="application/octet-stream", headers=headers)

    return app
