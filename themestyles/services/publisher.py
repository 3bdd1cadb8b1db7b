"""Compile the theme's SCSS tree into one stylesheet and publish it.

The publisher is built per request. It validates the theme layout once, then
any number of hook calls read that state:

* ``on_activate`` compiles (theme activation or the CLI).
* ``on_admin_action`` handles the signed "Compile SCSS" link.
* ``on_render_head`` links the compiled stylesheet on public/editor pages.
* ``on_admin_render`` adds the toolbar link and the error banner.

Any failure (missing libsass, missing paths, unreadable entry file, compiler
error, unwritable output) is folded into a single error state that is never
cleared. Once errored, compiling and publishing are both no-ops and admins
see the stored message.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

try:
    import sass
except ImportError:  # pragma: no cover - reported by validate()
    sass = None

from themestyles.auth import user_can_manage
from themestyles.config import Settings
from themestyles.constants import (
    ACTION_PARAM,
    COMPILE_ACTION,
    COMPILE_SUCCESS_MESSAGE,
    COMPILER_ERROR_PREFIX,
    EDITOR_STYLE_HANDLE,
    FRONTEND_STYLE_HANDLE,
    LAST_COMPILE_OPTION,
    NONCE_PARAM,
    STYLE_MEDIA,
    TOOLBAR_NODE_ID,
    TOOLBAR_NODE_TITLE,
)
from themestyles.security import NonceManager
from themestyles.services.options import OptionStore
from themestyles.services.styles import (
    AdminBar,
    Notice,
    StyleAsset,
    StyleRegistry,
    ToolbarNode,
)
from themestyles.utils.urls import add_query_args, remove_query_args

logger = logging.getLogger(__name__)


class PublisherStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    ERRORED = "errored"


@dataclass
class CompilerState:
    source_dir: Path
    output_dir: Path
    entry_filename: str = "main.scss"
    output_filename: str = "main.css"
    has_error: bool = False
    error_message: str = ""

    @property
    def entry_path(self) -> Path:
        return self.source_dir / self.entry_filename

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_filename

    def set_error(self, message: str) -> None:
        if self.has_error:
            return
        self.has_error = True
        self.error_message = message


@dataclass(frozen=True)
class CompileResult:
    """Outcome of one libsass call: compiled ``css`` or an ``error`` message."""

    css: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CompileRequest:
    """Query parameters and identity of an admin request."""

    url: str
    user: Any = None
    action: str | None = None
    nonce: str | None = None

    @property
    def is_compile_action(self) -> bool:
        return self.action == COMPILE_ACTION


@dataclass(frozen=True)
class AdminActionOutcome:
    handled: bool
    compiled: bool = False
    redirect_url: str | None = None
    notice: Notice | None = None


class ThemeHooks(Protocol):
    """Lifecycle points the host application calls into."""

    def on_activate(self) -> bool: ...

    def on_render_head(self, styles: StyleRegistry, editor: bool = False) -> None: ...

    def on_admin_render(self, admin_bar: AdminBar, user: Any) -> list[Notice]: ...

    def on_admin_action(self, request: CompileRequest) -> AdminActionOutcome: ...


class StylesheetPublisher:
    def __init__(
        self,
        state: CompilerState,
        options: OptionStore,
        nonces: NonceManager,
        *,
        output_url: str,
        admin_url: str = "/admin/",
        import_subdirs: Sequence[str] = ("bootstrap", "theme", "woocommerce"),
        debug: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.options = options
        self.nonces = nonces
        self.output_url = output_url
        self.admin_url = admin_url
        self.import_subdirs = tuple(import_subdirs)
        self.debug = debug
        self._clock = clock
        self._validated = False

    @classmethod
    def from_settings(
        cls, settings: Settings, options: OptionStore, nonces: NonceManager
    ) -> StylesheetPublisher:
        state = CompilerState(
            source_dir=settings.source_dir,
            output_dir=settings.output_dir,
            entry_filename=settings.entry_filename,
            output_filename=settings.output_filename,
        )
        return cls(
            state,
            options,
            nonces,
            output_url=settings.output_url,
            import_subdirs=settings.import_subdirs,
            debug=settings.debug,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def status(self) -> PublisherStatus:
        if self.state.has_error:
            return PublisherStatus.ERRORED
        if not self._validated:
            return PublisherStatus.UNINITIALIZED
        return PublisherStatus.READY

    @property
    def import_paths(self) -> list[Path]:
        base = self.state.source_dir
        return [base, *(base / name for name in self.import_subdirs)]

    def _set_error(self, message: str) -> None:
        logger.error("Stylesheet publisher errored: %s", message)
        self.state.set_error(message)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self) -> bool:
        """Check the compiler and theme layout, stopping at the first failure."""
        self._validated = True
        state = self.state

        if sass is None:
            self._set_error("SCSS Compiler not found. Please run: pip install libsass")
            return False

        if not state.source_dir.is_dir():
            self._set_error(f"SCSS directory not found: {state.source_dir}")
            return False

        if not state.entry_path.is_file():
            self._set_error(f"Main SCSS file not found: {state.entry_path}")
            return False

        if not state.output_dir.is_dir():
            try:
                state.output_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
            except OSError:
                self._set_error(f"Failed to create CSS directory: {state.output_dir}")
                return False

        return not state.has_error

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------
    def _run_compiler(self, source: str) -> CompileResult:
        kwargs: dict[str, Any] = {
            "string": source,
            "include_paths": [str(path) for path in self.import_paths],
            "output_style": "expanded",
        }
        if self.debug:
            kwargs["source_map_embed"] = True
            kwargs["source_map_contents"] = True
        try:
            return CompileResult(css=sass.compile(**kwargs))
        except sass.CompileError as exc:
            return CompileResult(error=str(exc))
        except Exception as exc:
            logger.exception("libsass raised outside a compile error")
            return CompileResult(error=str(exc) or exc.__class__.__name__)

    def _fail(self, reason: str) -> bool:
        self._set_error(f"SCSS Compilation failed: {reason}")
        return False

    def compile(self) -> bool:
        """Compile the entry file and publish the CSS.

        Returns:
            True when the stylesheet was written and the timestamp stored.
        """
        if not self._validated:
            self.validate()
        if self.state.has_error:
            return False

        entry_path = self.state.entry_path
        output_path = self.state.output_path
        try:
            source = entry_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return self._fail(f"Failed to read entry file: {entry_path}")

        result = self._run_compiler(source)
        if not result.ok:
            return self._fail(result.error)

        try:
            output_path.write_text(result.css, encoding="utf-8")
        except OSError:
            return self._fail(f"Failed to write CSS file: {output_path}")

        try:
            previous = self.options.get_int(LAST_COMPILE_OPTION, 0) or 0
            stamp = max(int(self._clock()), previous)
            self.options.update(LAST_COMPILE_OPTION, stamp)
        except SQLAlchemyError:
            return self._fail(f"Failed to store compile time: {LAST_COMPILE_OPTION}")
        logger.info("Compiled %s -> %s (version %s)", entry_path, output_path, stamp)
        return True

    # ------------------------------------------------------------------
    # Admin trigger
    # ------------------------------------------------------------------
    def _gate(self, request: CompileRequest) -> bool:
        if not user_can_manage(request.user):
            return False
        if not request.is_compile_action:
            return False
        return bool(
            self.nonces.verify(request.nonce, COMPILE_ACTION, str(request.user.id))
        )

    def publish_request_handler(self, request: CompileRequest) -> AdminActionOutcome:
        """Run a compile for an authorized, signed request.

        Requests that fail the gate are reported as unhandled and change
        nothing. Handled requests always redirect to ``request.url`` without
        the action and nonce parameters, whatever the compile outcome; the
        outcome carries the notice to show after the redirect.
        """
        if not self._gate(request):
            if request.is_compile_action:
                logger.warning("Rejected compile request for %s", request.url)
            return AdminActionOutcome(handled=False)

        compiled = self.compile()
        if compiled:
            notice = Notice("success", COMPILE_SUCCESS_MESSAGE)
        else:
            notice = self.report_error()
        return AdminActionOutcome(
            handled=True,
            compiled=compiled,
            redirect_url=remove_query_args(request.url, (ACTION_PARAM, NONCE_PARAM)),
            notice=notice,
        )

    def register_toolbar_action(self, admin_bar: AdminBar, user: Any) -> None:
        if not user_can_manage(user):
            return
        href = self.nonces.nonce_url(
            add_query_args(self.admin_url, {ACTION_PARAM: COMPILE_ACTION}),
            COMPILE_ACTION,
            str(user.id),
        )
        admin_bar.add_node(
            ToolbarNode(id=TOOLBAR_NODE_ID, title=TOOLBAR_NODE_TITLE, href=href)
        )

    # ------------------------------------------------------------------
    # Asset registration
    # ------------------------------------------------------------------
    def _version(self) -> int:
        stored = self.options.get_int(LAST_COMPILE_OPTION)
        if stored is not None:
            return stored
        return int(self.state.output_path.stat().st_mtime)

    def _enqueue(self, styles: StyleRegistry, handle: str) -> StyleAsset | None:
        if self.state.has_error:
            return None
        if not self.state.output_path.is_file():
            return None
        try:
            version = self._version()
        except FileNotFoundError:
            return None
        return styles.enqueue(handle, self.output_url, [], version, STYLE_MEDIA)

    def publish_assets(self, styles: StyleRegistry) -> StyleAsset | None:
        return self._enqueue(styles, FRONTEND_STYLE_HANDLE)

    def publish_editor_assets(self, styles: StyleRegistry) -> StyleAsset | None:
        return self._enqueue(styles, EDITOR_STYLE_HANDLE)

    def report_error(self) -> Notice | None:
        if not self.state.has_error:
            return None
        return Notice("error", COMPILER_ERROR_PREFIX + self.state.error_message)

    # ------------------------------------------------------------------
    # ThemeHooks
    # ------------------------------------------------------------------
    def on_activate(self) -> bool:
        return self.compile()

    def on_render_head(self, styles: StyleRegistry, editor: bool = False) -> None:
        if editor:
            self.publish_editor_assets(styles)
        else:
            self.publish_assets(styles)

    def on_admin_render(self, admin_bar: AdminBar, user: Any) -> list[Notice]:
        self.register_toolbar_action(admin_bar, user)
        notice = self.report_error()
        return [notice] if notice else []

    def on_admin_action(self, request: CompileRequest) -> AdminActionOutcome:
        return self.publish_request_handler(request)
