# Overview: Service-layer low-stock alerts; derives alert status per product and dedups persisted rows.

"""
Low Stock Notifications

STATUS (per product, from quantity and the product's low_stock threshold):
- quantity <= 0                  -> "out"
- no threshold (None or <= 0)    -> no alert
- quantity <= threshold / 2      -> "critical"
- quantity <  threshold          -> "warning"

DEDUP: one Notification row per (owner, product, status). Repeated reads
return the same row id and notified_at; only the message text is
refreshed when it changes (e.g. the product was renamed).
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Notification
from . import products_service
from app.time_utils import to_utc_z

logger = logging.getLogger(__name__)

STATUS_OUT = "out"
STATUS_CRITICAL = "critical"
STATUS_WARNING = "warning"

SEVERITY_WARNING = "WARNING"
SEVERITY_CRITICAL = "CRITICAL"


def derive_stock_status(quantity, threshold) -> str | None:
    if quantity is None:
        return None
    if quantity <= 0:
        return STATUS_OUT
    if threshold is None or threshold <= 0:
        return None
    if quantity <= threshold / 2:
        return STATUS_CRITICAL
    if quantity < threshold:
        return STATUS_WARNING
    return None


def build_message(stock_name: str, status: str) -> str:
    if status == STATUS_OUT:
        return f"Your {stock_name} stock is out of stock"
    if status == STATUS_CRITICAL:
        return f"Your {stock_name} stock is critically low"
    return f"Your {stock_name} stock is running low"


def severity_for(status: str) -> str:
    if status == STATUS_WARNING:
        return SEVERITY_WARNING
    return SEVERITY_CRITICAL


def _derive_alerts(products) -> list[dict]:
    alerts = []
    for p in products:
        status = derive_stock_status(p.quantity, p.low_stock)
        if status is None:
            continue
        alerts.append({
            "product_id": p.id,
            "stock_name": p.name,
            "quantity": p.quantity,
            "threshold": p.low_stock or 0,
            "status": status,
            "severity": severity_for(status),
            "message": build_message(p.name, status),
        })
    return alerts


def _load_existing(owner_id: int, product_ids) -> dict:
    rows = (
        db.session.query(Notification)
        .filter(Notification.user_id == owner_id, Notification.product_id.in_(product_ids))
        .all()
    )
    return {(n.product_id, n.status): n for n in rows}


def _sync_rows(owner_id: int, alerts: list[dict]) -> dict:
    """Create missing rows and refresh changed text; commit once if anything changed."""
    by_key = _load_existing(owner_id, {a["product_id"] for a in alerts})

    dirty = False
    for alert in alerts:
        key = (alert["product_id"], alert["status"])
        record = by_key.get(key)
        if record is None:
            record = Notification(
                user_id=owner_id,
                product_id=alert["product_id"],
                type="LOW_STOCK",
                status=alert["status"],
                severity=alert["severity"],
                message=alert["message"],
            )
            db.session.add(record)
            by_key[key] = record
            dirty = True
        elif record.message != alert["message"] or record.severity != alert["severity"]:
            record.message = alert["message"]
            record.severity = alert["severity"]
            dirty = True

    if dirty:
        db.session.commit()
    return by_key


def get_low_stock_notifications(owner_id: int) -> list[dict]:
    """
    Current low-stock alerts for an owner, newest notification first.

    Missing Notification rows are created in one commit; existing rows keep
    their id and notified_at. A concurrent first read that inserted the same
    rows first wins; this call then reuses them.

    Returns:
        List of dicts: notification_id, notified_at, product_id, stock_name,
        quantity, threshold, status, severity, message
    """
    alerts = _derive_alerts(products_service.list_products_for_low_stock(owner_id))
    if not alerts:
        return []

    try:
        by_key = _sync_rows(owner_id, alerts)
    except IntegrityError:
        db.session.rollback()
        logger.info("Notification rows for owner %s were created concurrently; reloading", owner_id)
        by_key = _sync_rows(owner_id, alerts)

    results = []
    for alert in alerts:
        record = by_key[(alert["product_id"], alert["status"])]
        results.append({
            **alert,
            "notification_id": record.id,
            "notified_at": record.notified_at,
        })

    results.sort(key=lambda a: (a["notified_at"], a["notification_id"]), reverse=True)
    for item in results:
        item["notified_at"] = to_utc_z(item["notified_at"])
    return results
