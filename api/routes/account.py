"""
Account routes: operations list, operation editing and category update.

Routes:
    GET  /account/                  → redirect to /account/list
    GET  /account/list              → account/list.html (operations with a
                                      category selector per row), or a
                                      redirect to /account/init when the
                                      account has no history at all
    GET  /account/add               → account/add.html (planned operation form)
    POST /account/add               → insert a planned operation
    GET  /account/del/{op_id}       → delete an operation
    GET  /account/unmerge/{op_id}   → detach the planned amount from an
                                      operation
    GET  /account/init              → account/init.html (initial balance form)
    POST /account/init              → insert the initial balance operation
    POST /account/update_cat.json   → {"isOk": true} or
                                      {"isOk": false, "errorName": "..."}

The update endpoint takes form fields ``op`` (operation id) and ``cat``
(category id, -1 to clear the category).  Unknown ids are answered with
404 and an ``errorName`` the browser shows as-is.

Form pages redirect to the list after a successful write and re-render the
form with its errors (HTTP 400) otherwise.
"""

import logging
import sqlite3
from datetime import date, timedelta

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from api.database import (
    balance_before,
    clear_operation_planned,
    delete_operation,
    get_category,
    get_db,
    get_operation,
    insert_operation,
    list_categories,
    list_operations,
    month_summary,
    set_operation_category,
)
from api.models import UpdateCategoryResponse
from api.templating import get_templates

router = APIRouter(prefix="/account", tags=["account"])

_logger = logging.getLogger("bankit_api")

NO_CATEGORY = -1


# ── Date range helpers ────────────────────────────────────────────────────────

def parse_month(year_month: str) -> date | None:
    """Parse ``yyyy-mm`` into the first day of that month, or None."""
    if len(year_month) < 7:
        return None
    try:
        return date(int(year_month[0:4]), int(year_month[5:7]), 1)
    except ValueError:
        return None


def first_history_day(today: date) -> date:
    """First day shown by default.

    After the 7th of the month the history starts on the 1st of the current
    month, otherwise on the 1st of the previous month.
    """
    if today.day > 7:
        return today.replace(day=1)
    return (today.replace(day=1) - timedelta(days=1)).replace(day=1)


def _last_day_of_month(day: date) -> date:
    next_month = (day.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def resolve_range(
    start_param: str | None,
    end_param: str | None,
    today: date,
) -> tuple[date, date]:
    """Return the (start, end) days to display for the query parameters.

    Missing or unparsable bounds fall back to first_history_day() and today.
    An explicit end month extends to its last day but never past today.
    Reversed bounds are swapped.
    """
    start = parse_month(start_param) if start_param else None
    end = parse_month(end_param) if end_param else None

    if start is None:
        start = first_history_day(today)
    if end is None:
        end = today
    else:
        end = min(_last_day_of_month(end), today)

    if start > end:
        start, end = end, start
    return start, end


def _month_starts(start: date, end: date) -> list[date]:
    months = []
    cur = start.replace(day=1)
    while cur <= end:
        months.append(cur)
        cur = (cur.replace(day=28) + timedelta(days=4)).replace(day=1)
    return months


def compute_balances(ops: list[dict], initial: float) -> dict[str, float]:
    """Annotate *ops* in place with a running ``total`` and return the summary.

    Debited operations are accumulated first, in order.  Operations that are
    only planned are then stacked on top of the debited balance as
    "waiting" amounts.
    """
    current = initial
    current_diff = 0.0
    planned_waiting = 0.0

    for op in ops:
        if op["amount"] is not None:
            current += op["amount"]
            op["total"] = current
            if op["planned"] is not None:
                current_diff += op["amount"] - op["planned"]

    for op in ops:
        if op["amount"] is None:
            planned_waiting += op["planned"] or 0.0
            op["total"] = current + planned_waiting

    return {
        "current": current,
        "current_diff": current_diff,
        "period_balance": current - initial,
        "planned_waiting": planned_waiting,
        "current_waiting": current + planned_waiting,
    }


# ── Form helpers ──────────────────────────────────────────────────────────────

def parse_form_date(text: str, today: date) -> date | None:
    """Parse ``dd/mm`` (current year) or ``dd/mm/yyyy``; None when invalid."""
    parts = text.strip().split("/")
    try:
        if len(parts) == 2:
            return date(today.year, int(parts[1]), int(parts[0]))
        if len(parts) == 3:
            return date(int(parts[2]), int(parts[1]), int(parts[0]))
    except ValueError:
        return None
    return None


def parse_amount(text: str) -> float | None:
    """Parse an amount typed with a decimal comma or point; None when invalid."""
    cleaned = text.strip().replace(" ", "").replace("\u00a0", "").replace(",", ".")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def _validate_operation_form(
    operation_date: str,
    label: str,
    amount: str,
    today: date,
) -> tuple[dict, dict[str, str]]:
    """Return the parsed values and a field → message dict of errors."""
    errors = {}
    day = parse_form_date(operation_date, today)
    if day is None:
        errors["operation_date"] = "Date invalide (jj/mm ou jj/mm/aaaa)."
    if not label.strip():
        errors["label"] = "Le libellé est obligatoire."
    value = parse_amount(amount)
    if value is None:
        errors["amount"] = "Le montant est obligatoire."
    return {"operation_date": day, "label": label.strip(), "amount": value}, errors


def _render_form(request: Request, template: str, form: dict,
                 errors: dict[str, str] | None = None) -> HTMLResponse:
    return get_templates(request).TemplateResponse(
        request,
        template,
        {"form": form, "errors": errors or {}},
        status_code=400 if errors else 200,
    )


def _to_list(request: Request) -> RedirectResponse:
    return RedirectResponse(url=str(request.url_for("account_list")), status_code=303)


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("/", include_in_schema=False)
def index(request: Request) -> RedirectResponse:
    return RedirectResponse(url=str(request.url_for("account_list")), status_code=302)


@router.get("/list", response_class=HTMLResponse, include_in_schema=False,
            name="account_list")
def account_list(
    request: Request,
    startDate: str | None = None,
    endDate: str | None = None,
    conn: sqlite3.Connection = Depends(get_db),
):
    """Operations of the selected period with running balances."""
    start, end = resolve_range(startDate, endDate, date.today())
    ops = list_operations(conn, start, end)
    initial = balance_before(conn, start)
    if initial is None and not ops:
        return RedirectResponse(url=str(request.url_for("account_init")), status_code=302)
    balances = compute_balances(ops, initial or 0.0)

    summary = {}
    for month in _month_starts(start, end):
        totals = month_summary(conn, month)
        if totals:
            summary[month] = totals

    return get_templates(request).TemplateResponse(
        request,
        "account/list.html",
        {
            "start_day": start,
            "end_day": end,
            "ops": ops,
            "categories": list_categories(conn),
            "categories_summary": summary,
            "no_category": NO_CATEGORY,
            **balances,
        },
    )


@router.get("/add", response_class=HTMLResponse, include_in_schema=False,
            name="account_add")
def add_form(request: Request) -> HTMLResponse:
    """Form for a planned operation, debit checked by default."""
    form = {"operation_date": date.today().strftime("%d/%m/%Y"), "label": "",
            "amount": "", "debit": True}
    return _render_form(request, "account/add.html", form)


@router.post("/add", include_in_schema=False)
def add_operation(
    request: Request,
    operation_date: str = Form(""),
    label: str = Form(""),
    amount: str = Form(""),
    debit: bool = Form(False),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Insert a planned operation; a debit is stored as a negative amount."""
    values, errors = _validate_operation_form(operation_date, label, amount, date.today())
    if errors:
        form = {"operation_date": operation_date, "label": label,
                "amount": amount, "debit": debit}
        return _render_form(request, "account/add.html", form, errors)

    planned = -values["amount"] if debit else values["amount"]
    op_id = insert_operation(conn, values["operation_date"], values["label"],
                             planned=planned)
    _logger.info("operation_added op=%d planned=%.2f", op_id, planned)
    return _to_list(request)


@router.api_route("/del/{op_id}", methods=["GET", "POST"], include_in_schema=False)
def del_operation(
    request: Request,
    op_id: int,
    conn: sqlite3.Connection = Depends(get_db),
) -> RedirectResponse:
    """Delete an operation; unknown ids are ignored."""
    if delete_operation(conn, op_id):
        _logger.info("operation_deleted op=%d", op_id)
    return _to_list(request)


@router.api_route("/unmerge/{op_id}", methods=["GET", "POST"], include_in_schema=False)
def unmerge(
    request: Request,
    op_id: int,
    conn: sqlite3.Connection = Depends(get_db),
) -> RedirectResponse:
    """Separate a debited operation from the planned one it was merged with."""
    if clear_operation_planned(conn, op_id):
        _logger.info("operation_unmerged op=%d", op_id)
    return _to_list(request)


@router.get("/init", response_class=HTMLResponse, include_in_schema=False,
            name="account_init")
def init_form(request: Request) -> HTMLResponse:
    form = {"operation_date": date.today().strftime("%d/%m/%Y"),
            "label": "Solde initial", "amount": ""}
    return _render_form(request, "account/init.html", form)


@router.post("/init", include_in_schema=False)
def init_account(
    request: Request,
    operation_date: str = Form(""),
    label: str = Form(""),
    amount: str = Form(""),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Record the starting balance as a debited operation."""
    values, errors = _validate_operation_form(operation_date, label, amount, date.today())
    if errors:
        form = {"operation_date": operation_date, "label": label, "amount": amount}
        return _render_form(request, "account/init.html", form, errors)

    op_id = insert_operation(conn, values["operation_date"], values["label"],
                             amount=values["amount"])
    _logger.info("account_initialised op=%d amount=%.2f", op_id, values["amount"])
    return _to_list(request)


@router.post(
    "/update_cat.json",
    response_model=UpdateCategoryResponse,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Category saved"},
        404: {"model": UpdateCategoryResponse,
              "description": "Operation or category does not exist"},
        422: {"description": "Missing or non-integer form fields"},
    },
    summary="Update the category of an operation",
)
def update_category(
    op: int = Form(..., description="Operation id"),
    cat: int = Form(..., description="Category id, -1 to clear"),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Set (or clear with ``cat=-1``) the category of operation ``op``."""
    if get_operation(conn, op) is None:
        return _rejected(f"Opération [{op}] inexistante.")

    category_id = None
    if cat != NO_CATEGORY:
        if get_category(conn, cat) is None:
            return _rejected(f"Catégorie [{cat}] inexistante.")
        category_id = cat

    set_operation_category(conn, op, category_id)
    _logger.info("category_updated op=%d cat=%s", op, category_id)
    return UpdateCategoryResponse(isOk=True)


def _rejected(reason: str) -> JSONResponse:
    _logger.warning("category_update_rejected reason=%s", reason)
    body = UpdateCategoryResponse(isOk=False, errorName=reason)
    return JSONResponse(status_code=404, content=body.model_dump())
