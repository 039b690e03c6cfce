"""
Frontend entry route and HTML error pages.

Routes:
    GET /?p=use.htm&s=<page>   → "use" help page (see api/routes/use.py)
    GET /                      → redirect to /account/list

Only ``p=use.htm`` is served here; the sidebar links of the help page carry
``p`` so they land back on this route.
"""

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse
from api.routes.use import USE_PAGE_PARAM, render_use_page
from api.templating import get_templates

router = APIRouter(tags=["frontend"])


@router.get("/", include_in_schema=False)
def index(request: Request, p: str | None = None, s: str | None = None):
    """Dispatch on the ``p`` page parameter."""
    if p == USE_PAGE_PARAM:
        return render_use_page(request, s)
    return RedirectResponse(url=str(request.url_for("account_list")), status_code=302)


def register_error_handlers(app: FastAPI) -> None:
    """Render 404s as HTML for browsers, keep JSON for API clients."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        wants_html = "text/html" in request.headers.get("accept", "")
        if exc.status_code == 404 and wants_html:
            return get_templates(request).TemplateResponse(
                request,
                "errors/404.html",
                {"detail": exc.detail},
                status_code=404,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error="HTTP error", detail=str(exc.detail), status_code=exc.status_code,
            ).model_dump(),
            headers=getattr(exc, "headers", None),
        )
