"""
Jinja2 templates for the HTML routes.

create_app() builds one Jinja2Templates object per application, registers the
custom filters and the ``ctx_path`` global, and stores it on ``app.state``;
routes fetch it from the request with get_templates(request), so two apps in
the same process never share a context path.
"""

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from utils.formatting import format_amount, format_month


def build_templates(directory: Path, context_path: str = "/") -> Jinja2Templates:
    """Create the Jinja2Templates instance with BankIt filters and globals."""
    templates = Jinja2Templates(directory=str(directory))

    def fmt_amount(value) -> str:
        """Jinja filter: format an amount in euros, '-' for missing values."""
        try:
            v = None if value is None else float(value)
        except (TypeError, ValueError):
            return "-"
        return format_amount(v)

    templates.env.filters["fmt_amount"] = fmt_amount
    templates.env.filters["fmt_month"] = format_month
    templates.env.globals["ctx_path"] = context_path
    return templates


def get_templates(request: Request) -> Jinja2Templates:
    templates = getattr(request.app.state, "templates", None)
    if templates is None:
        raise RuntimeError("Templates not initialised for this application")
    return templates
