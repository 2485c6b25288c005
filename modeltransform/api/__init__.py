"""Stub transformation service.

This module provides a small FastAPI service that speaks the same multipart
protocol as the real model transformation endpoint. It is meant for local
development and end-to-end tests of the client.
"""

from .server import create_app  # noqa: F401
