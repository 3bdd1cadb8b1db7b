#!/usr/bin/env python3
"""Compile the theme's SCSS tree into css/main.css from the command line."""

import sys

from themestyles.config import settings
from themestyles.database import Base, SessionLocal, engine
from themestyles.dependencies import get_nonce_manager
from themestyles.models import option  # noqa: F401 - registers the options table
from themestyles.observability import configure_logging
from themestyles.services.options import OptionStore
from themestyles.services.publisher import StylesheetPublisher


def compile_scss() -> StylesheetPublisher:
    Base.metadata.create_all(bind=engine, tables=[Base.metadata.tables["options"]])
    with SessionLocal() as db:
        publisher = StylesheetPublisher.from_settings(
            settings, OptionStore(db), get_nonce_manager()
        )
        publisher.validate()
        publisher.on_activate()
    return publisher


def main() -> int:
    configure_logging(settings.log_level.upper(), theme=settings.theme_root)
    publisher = compile_scss()
    if publisher.state.has_error:
        print(f"✗ {publisher.state.error_message}", file=sys.stderr)
        return 1
    print(f"✓ Compiled {publisher.state.entry_path} -> {publisher.state.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
