from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow


class Notification(db.Model):
    """
    Persisted low-stock alert, used for display and dedup only.

    DEDUP: one row per (owner, product, stock status). The message text is a
    display field and is refreshed when the wording or product name changes.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", "status", name="uq_notifications_owner_product_status"),
        db.Index("ix_notifications_owner_notified", "user_id", "notified_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, default="LOW_STOCK")
    status = db.Column(db.String(16), nullable=False)
    severity = db.Column(db.String(16), nullable=False)
    message = db.Column(db.String(255), nullable=False)

    # Python-side default keeps sub-second ordering on SQLite
    notified_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "type": self.type,
            "status": self.status,
            "severity": self.severity,
            "message": self.message,
            "notified_at": to_utc_z(self.notified_at),
        }
