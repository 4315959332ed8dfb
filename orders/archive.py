"""Order archive side-channel.

After an order commits, an external webhook (a spreadsheet script) is asked to
create a per-order sheet and append a row to the master ledger. The outcome is
merge-patched onto the order as `archive_status` = archived / delayed. Nothing
here can fail a checkout: the task runs on a worker thread after the response,
and every failure ends as a `delayed` flag for an operator to follow up.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

import requests
from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from .exceptions import ArchiveError, TransientArchiveError
from .models import Order

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TransientArchiveError)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with linear backoff (`base_delay * attempt`)."""

    max_attempts: int = 3
    base_delay: float = 0.7
    retryable: Callable[[BaseException], bool] = is_transient

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    def run(self, fn, *, sleep=time.sleep, describe="call"):
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except Exception as exc:
                if attempt >= self.max_attempts or not self.retryable(exc):
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                    describe,
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                sleep(delay)


@dataclass(frozen=True)
class ArchiveResult:
    sheet_id: str
    sheet_url: str
    master_logged: bool = False


# --------------------------- payload / response ---------------------------

def _money(value):
    return float(value)


def build_archive_payload(order: Order, source: str = "") -> dict:
    items = [
        {
            "productId": item.product_id,
            "name": item.name,
            "slug": item.slug,
            "image": item.image,
            "color": item.color,
            "quantity": item.quantity,
            "unitPrice": _money(item.unit_price),
            "deliveryFee": _money(item.delivery_fee),
            "lineTotal": _money(item.line_total),
        }
        for item in order.items.all()
    ]
    return {
        "source": source,
        "orderId": str(order.pk),
        "orderNumber": order.order_number,
        "uid": order.uid,
        "email": order.email,
        "customerDetails": order.customer_details,
        "items": items,
        "pricing": {
            "subtotal": _money(order.subtotal),
            "deliveryTotal": _money(order.delivery_total),
            "grandTotal": _money(order.grand_total),
        },
        "createdAt": order.created_at.isoformat(),
    }


def _first_text(data, *keys):
    for key in keys:
        value = data.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def normalize_archive_response(data: dict, fallback_id: str) -> ArchiveResult:
    sheet_id = _first_text(data, "orderSheetId", "spreadsheetId", "fileId")
    sheet_url = _first_text(data, "orderSheetUrl", "spreadsheetUrl", "fileUrl")
    if not sheet_id and not sheet_url:
        raise ArchiveError("Archive endpoint responded without orderSheetId/orderSheetUrl.")
    return ArchiveResult(
        sheet_id=sheet_id or fallback_id,
        sheet_url=sheet_url,
        master_logged=bool(data.get("masterLogged")),
    )


def parse_archive_response(response: requests.Response, fallback_id: str) -> ArchiveResult:
    text = response.text or ""
    try:
        parsed = response.json()
    except ValueError:
        parsed = None
    if not isinstance(parsed, dict):
        parsed = None

    if not response.ok:
        detail = ((parsed or {}).get("message") or "").strip() or text[:240] or "Unknown error"
        message = f"Archive request failed ({response.status_code}): {detail}"
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransientArchiveError(message)
        raise ArchiveError(message)

    if parsed is None:
        lowered = text.lower()
        if "script function not found: dopost" in lowered:
            raise ArchiveError("Archive script has no doPost handler; redeploy the webhook script.")
        if "sign in" in lowered or "accounts.google.com" in lowered:
            raise ArchiveError("Archive endpoint requires a Google login; deploy it with access set to Anyone.")
        raise ArchiveError("Archive endpoint returned a non-JSON response.")

    if parsed.get("ok") is False:
        raise ArchiveError(parsed.get("message") or "Archive endpoint rejected the order.")

    return normalize_archive_response(parsed, fallback_id)


# --------------------------------- client ---------------------------------

class OrderArchiveClient:
    """POSTs an order payload to the archive webhook with timeout and retries."""

    def __init__(self, endpoint, *, secret="", timeout=60.0, policy=None, session=None, sleep=time.sleep):
        if not endpoint:
            raise ArchiveError("Order archive endpoint is not configured.")
        self.endpoint = endpoint
        self.secret = secret
        self.timeout = timeout
        self.policy = policy or RetryPolicy()
        self.session = session or requests.Session()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, **kwargs):
        cfg = settings.ORDERS_ARCHIVE
        kwargs.setdefault(
            "policy",
            RetryPolicy(max_attempts=cfg["MAX_ATTEMPTS"], base_delay=cfg["BACKOFF_SECONDS"]),
        )
        return cls(cfg["ENDPOINT"], secret=cfg["SHARED_SECRET"], timeout=cfg["TIMEOUT_SECONDS"], **kwargs)

    def create(self, payload: dict) -> ArchiveResult:
        return self.policy.run(
            lambda: self._post_once(payload),
            sleep=self._sleep,
            describe=f"Archive of order {payload.get('orderNumber')}",
        )

    def _post_once(self, payload):
        params = {"secret": self.secret} if self.secret else None
        try:
            response = self.session.post(self.endpoint, params=params, json=payload, timeout=self.timeout)
        except requests.Timeout as exc:
            raise TransientArchiveError(f"Archive request timed out after {self.timeout:g}s.") from exc
        except requests.ConnectionError as exc:
            raise TransientArchiveError(f"Archive request could not connect: {exc}") from exc
        except requests.RequestException as exc:
            raise ArchiveError(f"Archive request failed: {exc}") from exc
        return parse_archive_response(response, payload["orderId"])


# ------------------------------ order patching ------------------------------

def _patch_order(order_id, **fields):
    Order.objects.filter(pk=order_id).update(updated_at=timezone.now(), **fields)


def archive_order(order_id, client=None):
    """Archive one order and record the outcome; returns the new archive status or None."""
    order = Order.objects.prefetch_related("items").filter(pk=order_id).first()
    if order is None:
        logger.error("Cannot archive order %s: it does not exist", order_id)
        return None

    try:
        client = client or OrderArchiveClient.from_settings()
        result = client.create(build_archive_payload(order, source=settings.ORDERS_ARCHIVE["SOURCE"]))
    except Exception as exc:
        logger.warning("Archiving order %s failed, marking delayed: %s", order.order_number, exc)
        _patch_order(order.pk, archive_status=Order.ArchiveStatus.DELAYED)
        return Order.ArchiveStatus.DELAYED

    _patch_order(
        order.pk,
        archive_status=Order.ArchiveStatus.ARCHIVED,
        order_sheet_id=result.sheet_id,
        order_sheet_url=result.sheet_url,
    )
    logger.info(
        "Archived order %s as %s (master ledger %s)",
        order.order_number,
        result.sheet_id,
        "updated" if result.master_logged else "not updated",
    )
    return Order.ArchiveStatus.ARCHIVED


# ------------------------------- scheduling -------------------------------

_executor = None
_executor_lock = threading.Lock()


def archive_enabled() -> bool:
    return bool(settings.ORDERS_ARCHIVE.get("ENDPOINT"))


def _get_executor():
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=settings.ORDERS_ARCHIVE["WORKERS"],
                thread_name_prefix="order-archive",
            )
        return _executor


def _archive_isolated(order_id):
    try:
        return archive_order(order_id)
    except Exception:
        logger.exception("Archive task for order %s crashed", order_id)
        return None


def _run_in_worker(order_id):
    close_old_connections()
    try:
        return _archive_isolated(order_id)
    finally:
        close_old_connections()


def schedule_archival(order_id):
    """Queue the archive of a committed order; never raises into the caller."""
    if not archive_enabled():
        logger.debug("Order archive disabled; skipping order %s", order_id)
        return None
    if settings.ORDERS_ARCHIVE.get("SYNCHRONOUS"):
        return _archive_isolated(order_id)
    return _get_executor().submit(_run_in_worker, order_id)
