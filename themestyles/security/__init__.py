"""Security façade for nonces and rate limiting."""

from .nonce import NonceManager  # noqa: F401
from .rate_limit import limiter  # noqa: F401

__all__ = [
    "NonceManager",
    "limiter",
]
