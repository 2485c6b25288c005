from __future__ import annotations

import json
import socket
import ssl
import uuid
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, BinaryIO, List, Mapping, Optional, Protocol, runtime_checkable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

TRANSFORM_MODEL_PATH = "/v1.0/workflows/models/transform"

_CRLF = b"\r\n"
_COPY_CHUNK = 1024 * 1024


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    Security notes:
    - Treat `body_bytes` as untrusted.

    """

    status: int
    headers: Mapping[str, str]
    body_bytes: bytes

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))

    def text(self) -> str:
        return self.body_bytes.decode("utf-8", errors="replace")


class NetworkError(RuntimeError):
    """Raised when no HTTP response could be obtained."""


@runtime_checkable
class HttpTransport(Protocol):
    """Sends one request and returns whatever response the server produced.

    Non-2xx responses are returned, not raised. Only failures that leave no
    response at all raise NetworkError.
    """

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse: ...


class UrllibTransport:
    """Stdlib-only transport.

    Security notes:
    - Uses default SSL context (verification ON).
    - Holds no per-request state, so one instance may be shared across threads.

    """

    def __init__(self, ssl_context: Optional[ssl.SSLContext] = None):
        self._ssl_context = ssl_context

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        req = Request(url=url, data=body, method=method)
        for k, v in headers.items():
            req.add_header(k, v)

        kwargs: dict = {"context": self._ssl_context or ssl.create_default_context()}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            with urlopen(req, **kwargs) as resp:
                data = resp.read()
                hdrs = {k: v for k, v in resp.headers.items()}
                return HttpResponse(status=int(resp.status), headers=hdrs, body_bytes=data)
        except HTTPError as e:
            try:
                data = e.read() if hasattr(e, "read") else b""
            except (HTTPException, OSError) as read_err:
                raise NetworkError(
                    f"unable to read error response (status {e.code}): {read_err!r}"
                ) from read_err
            hdrs = dict(getattr(e, "headers", {}) or {})
            return HttpResponse(
                status=int(getattr(e, "code", 0) or 0), headers=hdrs, body_bytes=data or b""
            )
        except URLError as e:
            raise NetworkError(f"network error: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise NetworkError(f"request timed out: {e}") from e
        except HTTPException as e:
            raise NetworkError(f"malformed response: {e!r}") from e
        except OSError as e:
            raise NetworkError(f"network error: {e}") from e


class MultipartEncodingError(Exception):
    """A multipart/form-data body could not be built.

    `stage` is one of: create_part, copy_file, write_field, close.
    """

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


def _check_token(stage: str, label: str, value: str) -> None:
    if not isinstance(value, str):
        raise MultipartEncodingError(stage, f"{label} must be a string")
    if any(c in value for c in ('"', "\r", "\n")):
        raise MultipartEncodingError(stage, f"{label} contains forbidden characters: {value!r}")


class MultipartFormWriter:
    """Eager, in-memory multipart/form-data encoder.

    Parts are emitted in the order they are added. The body exists only after
    close(); nothing is streamed lazily.

    Security notes:
    - Field names and filenames are rejected (not escaped) if they contain
      quotes or line breaks, which would let a value forge extra headers.
    - Caller should enforce size limits.
    """

    def __init__(self, boundary: Optional[str] = None):
        self.boundary = boundary or "----modeltransform-" + uuid.uuid4().hex
        self._chunks: List[bytes] = []
        self._part_names: List[str] = []
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def part_names(self) -> List[str]:
        return list(self._part_names)

    def _ensure_open(self, stage: str) -> None:
        if self._closed:
            raise MultipartEncodingError(stage, "writer is already closed")

    def add_file(
        self,
        name: str,
        filename: str,
        stream: BinaryIO,
        content_type: str = "application/octet-stream",
    ) -> int:
        """Append a file part holding the full remaining contents of `stream`.

        Returns the number of bytes copied.
        """

        self._ensure_open("create_part")
        _check_token("create_part", "field name", name)
        _check_token("create_part", "filename", filename)

        header = (
            f"--{self.boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n"
        ).encode("utf-8")

        data: List[bytes] = []
        total = 0
        try:
            while True:
                chunk = stream.read(_COPY_CHUNK)
                if not chunk:
                    break
                if not isinstance(chunk, (bytes, bytearray)):
                    raise TypeError(f"stream returned {type(chunk).__name__}, expected bytes")
                data.append(bytes(chunk))
                total += len(chunk)
        except (OSError, ValueError, TypeError) as e:
            raise MultipartEncodingError("copy_file", str(e)) from e

        self._chunks.append(header)
        self._chunks.extend(data)
        self._chunks.append(_CRLF)
        self._part_names.append(name)
        return total

    def add_field(self, name: str, value: str) -> None:
        """Append a plain text field."""

        self._ensure_open("write_field")
        _check_token("write_field", "field name", name)
        if not isinstance(value, str):
            raise MultipartEncodingError("write_field", f"value of {name!r} must be a string")

        self._chunks.append(
            (
                f"--{self.boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
            ).encode("utf-8")
        )
        self._chunks.append(value.encode("utf-8"))
        self._chunks.append(_CRLF)
        self._part_names.append(name)

    def close(self) -> bytes:
        """Write the closing boundary and return the finished body."""

        self._ensure_open("close")
        if not self._part_names:
            raise MultipartEncodingError("close", "form has no parts")
        self._chunks.append(f"--{self.boundary}--\r\n".encode("utf-8"))
        self._closed = True
        return b"".join(self._chunks)


def tenant_base_url(tenant: str) -> str:
    """Base URL for a tenant: `https://<tenant>` unless a scheme is given."""

    t = (tenant or "").strip().rstrip("/")
    if not t:
        raise ValueError("tenant must be a non-empty string")
    if t.startswith(("http://", "https://")):
        return t
    return "https://" + t


class TransformApiClient:
    """Endpoint binding for the model transformation API of one tenant."""

    def __init__(self, tenant: str, transport: HttpTransport, *, path: str = TRANSFORM_MODEL_PATH):
        self.base_url = tenant_base_url(tenant)
        self.transport = transport
        self.path = "/" + path.lstrip("/")

    @property
    def url(self) -> str:
        return self.base_url + self.path

    def transform_source_model_to_target_model(
        self,
        *,
        authorization: str,
        body: bytes,
        content_type: str,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        headers = {
            "Authorization": authorization,
            "Content-Type": content_type,
            "Content-Length": str(len(body)),
            "Accept": "application/octet-stream, application/json",
        }
        return self.transport.send("POST", self.url, headers=headers, body=body, timeout=timeout)
