from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from themestyles.auth import current_optional_user
from themestyles.dependencies import get_publisher
from themestyles.security import limiter
from themestyles.services.publisher import StylesheetPublisher
from themestyles.services.styles import AdminBar, StyleRegistry
from themestyles.staticfiles import templates

router = APIRouter(tags=["ui"])


def _render_page(
    request: Request,
    template: str,
    publisher: StylesheetPublisher,
    user,
    *,
    editor: bool = False,
) -> HTMLResponse:
    styles = StyleRegistry()
    publisher.on_render_head(styles, editor=editor)
    admin_bar = AdminBar()
    publisher.register_toolbar_action(admin_bar, user)
    return templates.TemplateResponse(
        request,
        template,
        {
            "request": request,
            "styles": styles.assets,
            "admin_bar": admin_bar,
        },
    )


@router.get("/", response_class=HTMLResponse)
@limiter.limit("60/minute")
def home(
    request: Request,
    publisher: StylesheetPublisher = Depends(get_publisher),
    user=Depends(current_optional_user),
):
    return _render_page(request, "index.html", publisher, user)


@router.get("/editor", response_class=HTMLResponse)
@limiter.limit("60/minute")
def editor(
    request: Request,
    publisher: StylesheetPublisher = Depends(get_publisher),
    user=Depends(current_optional_user),
):
    """Block-editor canvas; links the editor variant of the theme stylesheet."""
    return _render_page(request, "editor.html", publisher, user, editor=True)
