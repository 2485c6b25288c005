from __future__ import annotations

import os
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

from modeltransform.client.http import (
    HttpResponse,
    HttpTransport,
    MultipartEncodingError,
    MultipartFormWriter,
    NetworkError,
    TransformApiClient,
    UrllibTransport,
)

from .context import RequestContext
from .errors import (
    ClassifiedHttpError,
    ErrorCause,
    HttpStatusError,
    ModelEncodingError,
    ModelFileError,
    TransportError,
    handle_common_errors,
)

DEFAULT_MODEL_FILENAME = "model"

MODEL_FIELD = "model"
TARGET_FORMAT_FIELD = "targetformat"
SOURCE_FORMAT_FIELD = "sourceformat"

_DEFAULT_ERR = "unable to transform model"

_STAGE_LOG = {
    "create_part": "unable to create form file",
    "copy_file": "unable to copy model file",
    "write_field": "unable to write form field",
    "close": "unable to close multipart writer",
}

ApiFactory = Callable[[str, HttpTransport], TransformApiClient]
Classifier = Callable[[HttpResponse], Optional[ErrorCause]]


@dataclass
class ModelTransformRequest:
    """Everything needed for one transformation.

    The caller owns `model_file` and must close it; it is read once.
    """

    model_file: BinaryIO
    target_format: str
    file_name: Optional[str] = None
    source_format: Optional[str] = None


@dataclass(frozen=True, slots=True)
class EncodedForm:
    body: bytes
    content_type: str
    part_names: tuple
    model_bytes: int


def encode_transform_form(
    model_file: BinaryIO,
    target_format: str,
    file_name: Optional[str] = None,
    source_format: Optional[str] = None,
) -> EncodedForm:
    """Build the multipart body for a transform call.

    Part order is fixed: model, targetformat, then sourceformat when given.

    Raises
    - MultipartEncodingError: on any failure, with the failing stage.
    """

    writer = MultipartFormWriter()
    n = writer.add_file(MODEL_FIELD, file_name or DEFAULT_MODEL_FILENAME, model_file)
    writer.add_field(TARGET_FORMAT_FIELD, target_format)
    if source_format:
        writer.add_field(SOURCE_FORMAT_FIELD, source_format)
    body = writer.close()
    return EncodedForm(
        body=body,
        content_type=writer.content_type,
        part_names=tuple(writer.part_names),
        model_bytes=n,
    )


class ModelTransformClient:
    """Client for the model transformation endpoint.

    Collaborators are injected so tests can substitute them:
    - transport: performs the HTTP exchange (default: stdlib urllib).
    - api_factory: binds the endpoint to a tenant.
    - classifier: recognizes known causes in failed responses.

    Instances hold no per-call state and may be shared between threads as long
    as the transport is thread-safe.
    """

    def __init__(
        self,
        transport: Optional[HttpTransport] = None,
        *,
        api_factory: ApiFactory = TransformApiClient,
        classifier: Classifier = handle_common_errors,
    ):
        self.transport = transport if transport is not None else UrllibTransport()
        self.api_factory = api_factory
        self.classifier = classifier

    def transform_model(
        self,
        ctx: RequestContext,
        model_file: BinaryIO,
        target_format: str,
        file_name: Optional[str] = None,
        source_format: Optional[str] = None,
    ) -> bytes:
        """Send a model to the service and return the transformed bytes.

        Raises
        - TypeError / ValueError: on programming errors (bad ctx, empty target format).
        - ModelEncodingError: the request body could not be built.
        - TransportError: no response was obtained.
        - ClassifiedHttpError: non-200 with a recognized cause.
        - HttpStatusError: non-200 otherwise.
        """

        if not isinstance(ctx, RequestContext):
            raise TypeError("ctx must be a RequestContext")
        if not isinstance(target_format, str) or not target_format.strip():
            raise ValueError("target_format must be a non-empty string")

        log = ctx.logger
        api = self.api_factory(ctx.tenant, self.transport)

        try:
            form = encode_transform_form(model_file, target_format, file_name, source_format)
        except MultipartEncodingError as e:
            log.error(
                "%s; err=%s",
                _STAGE_LOG.get(e.stage, "unable to encode form"),
                e,
                extra={"request_id": ctx.request_id, "stage": e.stage},
            )
            raise ModelEncodingError(_DEFAULT_ERR) from e

        try:
            resp = api.transform_source_model_to_target_model(
                authorization=ctx.authorization,
                body=form.body,
                content_type=form.content_type,
                timeout=ctx.timeout,
            )
        except NetworkError as e:
            log.error(
                "unable to transform model; err=%s",
                e,
                extra={"request_id": ctx.request_id, "tenant": ctx.tenant},
            )
            raise TransportError(_DEFAULT_ERR) from e

        if resp.status != 200:
            body = resp.text()
            cause = self.classifier(resp)
            if cause is not None:
                msg = f"unable to transform the model; err={cause}"
                log.error(msg, extra={"request_id": ctx.request_id, "status_code": resp.status})
                raise ClassifiedHttpError(msg, status=resp.status, body=body, cause=cause)

            msg = f"unable to transform the model; code={resp.status}, body={body}"
            log.error(msg, extra={"request_id": ctx.request_id, "status_code": resp.status})
            raise HttpStatusError(msg, status=resp.status, body=body)

        log.debug(
            "model transformed",
            extra={
                "request_id": ctx.request_id,
                "parts": list(form.part_names),
                "model_bytes": form.model_bytes,
                "response_bytes": len(resp.body_bytes),
            },
        )
        return resp.body_bytes

    def transform_model_from_file(
        self,
        ctx: RequestContext,
        file_path: str,
        target_format: str,
        source_format: Optional[str] = None,
    ) -> bytes:
        """Open `file_path` and transform it; the filename is its last path segment."""

        try:
            f = open(file_path, "rb")
        except OSError as e:
            raise ModelFileError(f"unable to open model file; err={e}") from e

        with f:
            filename = os.path.basename(os.fspath(file_path))
            return self.transform_model(ctx, f, target_format, filename, source_format)

    def transform_model_from_request(self, ctx: RequestContext, req: ModelTransformRequest) -> bytes:
        return self.transform_model(
            ctx, req.model_file, req.target_format, req.file_name, req.source_format
        )
