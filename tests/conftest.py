"""Test fixtures for the publisher, the option store and the HTTP app."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from uuid import uuid4
from unittest.mock import MagicMock

TESTS_ROOT = Path(__file__).parent
TEST_THEME_ROOT = Path(tempfile.mkdtemp(prefix="themestyles-"))

# Configure the environment *before* importing themestyles so the settings
# singleton, the engines and the static mount point at test locations.
os.environ.setdefault("DATABASE_URL", "sqlite:///test_app.db")
os.environ["THEME_ROOT"] = str(TEST_THEME_ROOT)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, delete  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from themestyles.database import Base, SessionLocal  # noqa: E402
from themestyles.main import app  # noqa: E402
from themestyles.models.option import Option  # noqa: E402
from themestyles.security import NonceManager  # noqa: E402
from themestyles.security.rate_limit import limiter  # noqa: E402
from themestyles.services.options import OptionStore  # noqa: E402
from themestyles.services.publisher import (  # noqa: E402
    CompilerState,
    StylesheetPublisher,
)

# Disable rate limiting in tests to prevent cross-test 429 flakes
limiter.enabled = False

TEST_DB_PATH = Path("test_app.db")
TEST_SECRET = "test-secret"

MAIN_SCSS = """\
@import "variables";
@import "buttons";
@import "layout";
@import "cart";
"""

PARTIALS = {
    "_variables.scss": "$brand: #336699;\n",
    "bootstrap/_buttons.scss": ".btn { color: $brand; }\n",
    "theme/_layout.scss": ".site-header { display: flex; }\n",
    "woocommerce/_cart.scss": ".woocommerce-cart { margin: 0; }\n",
}


def write_theme(root: Path, main_scss: str = MAIN_SCSS) -> Path:
    """Lay out src/assets/sass with an entry file and one partial per import dir."""
    sass_dir = root / "src" / "assets" / "sass"
    for name, body in PARTIALS.items():
        path = sass_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)
    (sass_dir / "main.scss").write_text(main_scss)
    return sass_dir


def make_user(*, superuser: bool = True) -> MagicMock:
    return MagicMock(
        email="admin@example.com",
        id=uuid4(),
        is_active=True,
        is_superuser=superuser,
    )


@pytest.fixture
def db_session():
    """In-memory options table, isolated per test."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine, tables=[Option.__table__])
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def options(db_session) -> OptionStore:
    return OptionStore(db_session)


@pytest.fixture
def nonces() -> NonceManager:
    return NonceManager(TEST_SECRET)


@pytest.fixture
def theme(tmp_path) -> Path:
    write_theme(tmp_path)
    return tmp_path


@pytest.fixture
def make_publisher(options, nonces):
    def factory(root: Path, **kwargs) -> StylesheetPublisher:
        state = CompilerState(
            source_dir=root / "src" / "assets" / "sass",
            output_dir=root / "css",
        )
        return StylesheetPublisher(
            state, options, nonces, output_url="/theme/css/main.css", **kwargs
        )

    return factory


def _empty(root: Path) -> None:
    for child in root.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()


# ── HTTP fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="session")
def client():
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    with TestClient(app) as test_client:
        yield test_client

    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
    shutil.rmtree(TEST_THEME_ROOT, ignore_errors=True)


@pytest.fixture
def theme_root(client) -> Path:
    """The configured theme root, emptied before and after each test."""
    _empty(TEST_THEME_ROOT)
    yield TEST_THEME_ROOT
    _empty(TEST_THEME_ROOT)
    with SessionLocal() as session:
        session.execute(delete(Option))
        session.commit()


@pytest.fixture
def scss_theme(theme_root) -> Path:
    write_theme(theme_root)
    return theme_root


@pytest.fixture
def admin_user() -> MagicMock:
    return make_user()


@pytest.fixture
def subscriber_user() -> MagicMock:
    return make_user(superuser=False)
