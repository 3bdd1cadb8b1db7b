"""Action-bound one-time tokens for privileged GET links.

A token is an HMAC over ``(tick, action, user_id)`` where ``tick`` advances
every half lifetime, so a token stays valid for between one half and one
full lifetime.
"""

from __future__ import annotations

import hashlib
import hmac
import math
import time
from collections.abc import Callable

from themestyles.constants import NONCE_PARAM
from themestyles.utils.urls import add_query_args

NONCE_LENGTH = 10


class NonceManager:
    def __init__(
        self,
        secret: str,
        lifetime: int = 60 * 60 * 24,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if lifetime < 2:
            raise ValueError("Nonce lifetime must be at least two seconds")
        self._secret = secret.encode("utf-8")
        self.lifetime = lifetime
        self._clock = clock

    def tick(self) -> int:
        return math.ceil(self._clock() / (self.lifetime / 2))

    def _digest(self, tick: int, action: str, user_id: str) -> str:
        message = f"{tick}|{action}|{user_id}".encode("utf-8")
        digest = hmac.new(self._secret, message, hashlib.sha256).hexdigest()
        return digest[-12:-2]

    def create(self, action: str, user_id: str) -> str:
        return self._digest(self.tick(), action, str(user_id))

    def verify(self, token: str | None, action: str, user_id: str) -> int:
        """Check ``token`` for ``action`` and ``user_id``.

        Returns:
            1 when generated in the current half lifetime, 2 when generated in
            the previous one, 0 when invalid.
        """
        if not token or len(token) != NONCE_LENGTH:
            return 0
        tick = self.tick()
        for age, candidate in enumerate((tick, tick - 1), start=1):
            expected = self._digest(candidate, action, str(user_id))
            if hmac.compare_digest(expected, token):
                return age
        return 0

    def nonce_url(self, url: str, action: str, user_id: str) -> str:
        """Return ``url`` with a fresh token in the ``_wpnonce`` query parameter."""
        return add_query_args(url, {NONCE_PARAM: self.create(action, user_id)})

