from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from themestyles.auth import current_active_user
from themestyles.config import settings
from themestyles.constants import (
    COMPILE_ACTION,
    COMPILE_NOTICE_COOKIE,
    LAST_COMPILE_OPTION,
)
from themestyles.dependencies import get_publisher
from themestyles.security import limiter
from themestyles.services.publisher import CompileRequest, StylesheetPublisher
from themestyles.services.styles import AdminBar, Notice
from themestyles.staticfiles import templates

router = APIRouter(prefix="/admin", tags=["admin"])


def _compile_redirect(url: str, notice: Notice | None) -> RedirectResponse:
    """Send the admin back to ``url`` with the compile notice in a flash cookie."""
    response = RedirectResponse(url=url, status_code=302)
    if notice is not None:
        response.set_cookie(
            COMPILE_NOTICE_COOKIE,
            notice.to_cookie(),
            max_age=60,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )
    return response


@router.get("/", response_class=HTMLResponse)
@limiter.limit("10/minute")
def admin_dashboard(
    request: Request,
    action: str | None = Query(default=None),
    nonce: str | None = Query(default=None, alias="_wpnonce"),
    publisher: StylesheetPublisher = Depends(get_publisher),
    user=Depends(current_active_user),
):
    """Admin landing page; also the target of the "Compile SCSS" toolbar link.

    A compile request that fails the capability or nonce check is refused
    with 403 and nothing is compiled.
    """
    if action is not None:
        outcome = publisher.on_admin_action(
            CompileRequest(url=str(request.url), user=user, action=action, nonce=nonce)
        )
        if outcome.handled:
            return _compile_redirect(outcome.redirect_url, outcome.notice)
        if action == COMPILE_ACTION:
            raise HTTPException(status_code=403, detail="Compile request rejected.")

    admin_bar = AdminBar()
    notices = publisher.on_admin_render(admin_bar, user)
    flash_cookie = request.cookies.get(COMPILE_NOTICE_COOKIE)
    flashed = Notice.from_cookie(flash_cookie)
    if flashed is not None and flashed not in notices:
        notices.append(flashed)

    last_compiled = publisher.options.get_int(LAST_COMPILE_OPTION)
    response = templates.TemplateResponse(
        request,
        "admin.html",
        {
            "request": request,
            "admin_bar": admin_bar,
            "notices": notices,
            "status": publisher.status.value,
            "last_compiled": (
                datetime.fromtimestamp(last_compiled, UTC).isoformat()
                if last_compiled
                else None
            ),
        },
    )
    if flash_cookie is not None:
        response.delete_cookie(COMPILE_NOTICE_COOKIE)
    return response
