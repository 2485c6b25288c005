from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .context import LoggerLike, RequestContext

ENV_TENANT = "MODELTRANSFORM_TENANT"
ENV_TOKEN = "MODELTRANSFORM_TOKEN"
ENV_TIMEOUT = "MODELTRANSFORM_TIMEOUT_SEC"
ENV_LOG_LEVEL = "MODELTRANSFORM_LOG_LEVEL"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def parse_log_level(raw: str) -> str:
    """Normalize a level name; raises ValueError for unknown names."""

    level = (raw or "").strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level {raw!r}; expected one of {', '.join(LOG_LEVELS)}")
    return level


def _env_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    """Read a float environment variable.

    Malformed values fall back to the default; `0` means unset.
    """

    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else None


def _env_log_level(env: Mapping[str, str], name: str, default: str) -> str:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return parse_log_level(raw)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Client configuration, usually loaded from the environment.

    Security notes:
    - The token is never included in repr().

    """

    tenant: Optional[str] = None
    token: Optional[str] = None
    timeout: Optional[float] = None
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"ClientSettings(tenant={self.tenant!r}, token={'***' if self.token else None}, "
            f"timeout={self.timeout!r}, log_level={self.log_level!r})"
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ClientSettings":
        env = os.environ if env is None else env
        return cls(
            tenant=(env.get(ENV_TENANT) or "").strip() or None,
            token=(env.get(ENV_TOKEN) or "").strip() or None,
            timeout=_env_float(env, ENV_TIMEOUT, None),
            log_level=_env_log_level(env, ENV_LOG_LEVEL, "INFO"),
        )

    def override(
        self,
        *,
        tenant: Optional[str] = None,
        token: Optional[str] = None,
    ) -> "ClientSettings":
        """Return new settings where every non-None argument wins."""

        return ClientSettings(
            tenant=tenant or self.tenant,
            token=token or self.token,
            timeout=self.timeout,
            log_level=self.log_level,
        )

    def build_context(self, logger: Optional[LoggerLike] = None) -> RequestContext:
        """Build a RequestContext.

        Raises
        - ValueError: if tenant or token is missing.
        """

        if not self.tenant:
            raise ValueError(f"tenant is not configured (set {ENV_TENANT} or pass --tenant)")
        if not self.token:
            raise ValueError(f"token is not configured (set {ENV_TOKEN} or pass --token)")
        log = logger or logging.getLogger("modeltransform.client")
        return RequestContext(tenant=self.tenant, token=self.token, logger=log, timeout=self.timeout)
