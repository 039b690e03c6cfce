"""
"Use" help page router.

Routes:
    GET /use?s=<page>.htm   → use.html with the sidebar and the selected
                              sub-template from templates/use/

The ``s`` query parameter is matched exactly against a fixed whitelist.
Anything else, including a missing parameter, falls back to the first page;
an unknown value is never an error.
"""

from dataclasses import dataclass
from enum import Enum

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from api.templating import get_templates

router = APIRouter(tags=["frontend"])

USE_PAGE_PARAM = "use.htm"
TEMPLATE_DIR = "use/"


class UsePage(Enum):
    """Sub-pages of the "use" page, in sidebar order."""

    FIRST = "first"
    COSTS = "costs"
    OPERATIONS = "operations"
    SYNC = "sync"

    @property
    def param(self) -> str:
        """Query-string value selecting this page, e.g. ``"costs.htm"``."""
        return f"{self.value}.htm"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def from_param(cls, value: str | None) -> "UsePage":
        """Map an ``s`` parameter to a page; unmatched or missing → FIRST."""
        return _BY_PARAM.get(value, cls.FIRST)


_LABELS = {
    UsePage.FIRST: "Premier lancement",
    UsePage.COSTS: "Charges/Revenus",
    UsePage.OPERATIONS: "Operations",
    UsePage.SYNC: "Synchronisation",
}

_BY_PARAM = {page.param: page for page in UsePage}


@dataclass(frozen=True)
class SidebarEntry:
    label: str
    href: str
    active: bool


def build_sidebar(active: UsePage) -> list[SidebarEntry]:
    """One entry per page, in enum order, with only *active* marked."""
    return [
        SidebarEntry(
            label=page.label,
            href=f"?p={USE_PAGE_PARAM}&s={page.param}",
            active=page is active,
        )
        for page in UsePage
    ]


def template_for(page: UsePage) -> str:
    """Template path included as the page body."""
    return f"{TEMPLATE_DIR}{page.value}.html"


def render_use_page(request: Request, s: str | None) -> HTMLResponse:
    page = UsePage.from_param(s)
    return get_templates(request).TemplateResponse(
        request,
        "use.html",
        {
            "page": page,
            "sidebar": build_sidebar(page),
            "body_template": template_for(page),
        },
    )


@router.get("/use", response_class=HTMLResponse, include_in_schema=False)
def use(request: Request, s: str | None = None) -> HTMLResponse:
    """Help page with a sidebar of the four sub-pages."""
    return render_use_page(request, s)
