"""HTTP plumbing for talking to a model transformation service.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw model bytes.
"""

from .http import (  # noqa: F401
    TRANSFORM_MODEL_PATH,
    HttpResponse,
    HttpTransport,
    MultipartEncodingError,
    MultipartFormWriter,
    NetworkError,
    TransformApiClient,
    UrllibTransport,
    tenant_base_url,
)
