"""CLI for inspecting and exercising the request limiter."""

from request_limiter.cli.app import app

__all__ = ["app"]
