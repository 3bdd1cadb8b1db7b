"""Shared dependency factories for FastAPI endpoints.

The publisher is request-scoped: each request validates the theme tree from
scratch, so an error state lasts until the request ends.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from themestyles.config import settings
from themestyles.database import get_db
from themestyles.security import NonceManager
from themestyles.services.options import OptionStore
from themestyles.services.publisher import StylesheetPublisher


def get_nonce_manager() -> NonceManager:
    """Get the nonce signer for privileged links.

    Returns:
        NonceManager keyed with the application secret
    """
    return NonceManager(settings.secret_key, settings.nonce_lifetime_seconds)


def get_option_store(db: Session = Depends(get_db)) -> OptionStore:
    return OptionStore(db)


def get_publisher(
    options: OptionStore = Depends(get_option_store),
    nonces: NonceManager = Depends(get_nonce_manager),
) -> StylesheetPublisher:
    """Get a validated stylesheet publisher for this request.

    Returns:
        StylesheetPublisher in the ready or errored state
    """
    publisher = StylesheetPublisher.from_settings(settings, options, nonces)
    publisher.validate()
    return publisher
