"""Category update client.

Turns a change of an operation's category selector into a POST to
``{context_path}account/update_cat.json`` and describes the UI effect to
apply.  The DOM binding lives in static/js/operation-list.js; this module is
the same handler without the browser, driven by an injected notifier.

Usage:
    python -m client.category_update --base-url http://localhost:8000 cat_12 3
    python -m client.category_update --base-url http://host --context-path /bankit cat_12 -1

Each call issues exactly one request: no retry, no de-duplication.  Two
changes in a row produce two independent requests and the last answer to
arrive wins.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import requests

from utils.config import normalize_context_path

logger = logging.getLogger("bankit_client")

ELEMENT_ID_PREFIX = "cat_"
UPDATE_ENDPOINT = "account/update_cat.json"
SAVED_MESSAGE = "Enregistré"
FALLBACK_ERROR = "Impossible de mettre à jour la catégorie"


class UiNotifier(Protocol):
    """UI capabilities the handler drives."""

    def loading(self, on: bool) -> None: ...

    def confirm(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that reports through the ``bankit_client`` logger."""

    def loading(self, on: bool) -> None:
        logger.debug("loading=%s", on)

    def confirm(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


@dataclass(frozen=True)
class UiEffect:
    """What the UI should do once the update request has finished."""

    ok: bool
    message: str
    reload: bool = False
    reset_index: Optional[int] = None

    def apply(self, control: Any) -> None:
        """Reset ``control.selected_index`` when the change was rejected."""
        if self.reset_index is not None:
            control.selected_index = self.reset_index


def parse_operation_id(element_id: str) -> str:
    """Operation id encoded in a selector id, ``"cat_42"`` -> ``"42"``."""
    return element_id[len(ELEMENT_ID_PREFIX):]


def interpret_response(payload: Any) -> UiEffect:
    """Map a decoded response body to a UI effect.

    ``None`` stands for a transport failure or an undecodable body and is
    handled like a rejection without message.
    """
    if isinstance(payload, dict) and payload.get("isOk") is True:
        return UiEffect(ok=True, message=SAVED_MESSAGE, reload=True)
    reason = payload.get("errorName") if isinstance(payload, dict) else None
    return UiEffect(ok=False, message=str(reason) if reason else FALLBACK_ERROR,
                    reset_index=0)


class CategoryUpdater:
    """Sends category changes and reports the outcome to a UiNotifier."""

    def __init__(self, base_url: str, notifier: UiNotifier,
                 context_path: str = "/",
                 session: Optional[requests.Session] = None,
                 timeout: float = 10.0):
        self.url = base_url.rstrip("/") + normalize_context_path(context_path) + UPDATE_ENDPOINT
        self.notifier = notifier
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _post(self, operation_id: str, category_id: str) -> Any:
        """POST the change; return the decoded body or None on failure."""
        try:
            resp = self.session.post(
                self.url,
                data={"cat": category_id, "op": operation_id},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("update_cat transport failure op=%s: %s", operation_id, exc)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("update_cat non-JSON response op=%s status=%s",
                           operation_id, resp.status_code)
            return None

    def on_change(self, element_id: str, value: str) -> UiEffect:
        """Handle a selector change for *element_id* with the new *value*."""
        operation_id = parse_operation_id(element_id)

        self.notifier.loading(True)
        try:
            payload = self._post(operation_id, str(value))
        finally:
            self.notifier.loading(False)

        effect = interpret_response(payload)
        if effect.ok:
            self.notifier.confirm(effect.message)
        else:
            self.notifier.error(effect.message)
        return effect

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Set the category of an operation on a BankIt server.",
    )
    parser.add_argument("element_id", help="Selector id, e.g. cat_42")
    parser.add_argument("category", help="Category id, -1 to clear")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000",
                        help="Server root URL (default: %(default)s)")
    parser.add_argument("--context-path", default="/",
                        help="URL prefix of the application (default: %(default)s)")
    parser.add_argument("--timeout", type=float, default=10.0,
                        help="Request timeout in seconds (default: %(default)s)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    with CategoryUpdater(args.base_url, LoggingNotifier(),
                         context_path=args.context_path,
                         timeout=args.timeout) as updater:
        effect = updater.on_change(args.element_id, args.category)
    return 0 if effect.ok else 1


if __name__ == "__main__":
    sys.exit(main())
