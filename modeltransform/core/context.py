from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union
from uuid import uuid4

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


@dataclass(frozen=True)
class RequestContext:
    """
    Ambient state for a single call against a tenant.

    Carries the tenant address, the bearer token and the logger that every
    operation needs. It is passed explicitly on each call; nothing is read from
    module-level state.

    Contract
    - tenant and token must be non-empty strings.
    - logger must be a logging.Logger or logging.LoggerAdapter.
    - timeout, when set, is forwarded to the transport as a deadline in seconds.

    Raises
    - ValueError / TypeError at construction if the contract is violated.
    """

    tenant: str
    token: str = field(repr=False)
    logger: LoggerLike = field(default_factory=lambda: logging.getLogger("modeltransform.client"))
    timeout: Optional[float] = None
    request_id: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        if not isinstance(self.tenant, str) or not self.tenant.strip():
            raise ValueError("tenant must be a non-empty string")
        if not isinstance(self.token, str) or not self.token.strip():
            raise ValueError("token must be a non-empty string")
        if not isinstance(self.logger, (logging.Logger, logging.LoggerAdapter)):
            raise TypeError("logger must be a logging.Logger or LoggerAdapter")
        if self.timeout is not None and float(self.timeout) <= 0:
            raise ValueError("timeout must be positive when set")

    @property
    def authorization(self) -> str:
        return "Bearer " + self.token

    def with_timeout(self, timeout: Optional[float]) -> "RequestContext":
        """Return a copy of this context with a different deadline."""

        return RequestContext(
            tenant=self.tenant,
            token=self.token,
            logger=self.logger,
            timeout=timeout,
            request_id=self.request_id,
        )
