"""Logging setup for the theme stylesheet service."""

from __future__ import annotations

from themestyles.observability.logging import RequestContextFilter, configure_logging

__all__ = ["RequestContextFilter", "configure_logging"]
