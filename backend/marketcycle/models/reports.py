from __future__ import annotations

from ..extensions import db
from marketcycle.time_utils import to_iso_date, to_utc_z


class ExpiredProductEntry(db.Model):
    """
    Append-only log of products withdrawn from sale because they expired.

    Rows are never edited; the expired products report filters and
    aggregates over them.
    """
    __tablename__ = "expired_product_entries"
    __table_args__ = (
        db.Index("ix_expired_product_entries_expiry", "expiry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    expiry_date = db.Column(db.Date, nullable=False)

    # weekly | biweekly | monthly
    cycle_type = db.Column(db.String(16), nullable=False)
    cycle_ref = db.Column(db.String(120), nullable=True)

    # withdrawn | discarded | donated | composted
    action_taken = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    original_value_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<ExpiredProductEntry id={self.id} product={self.product!r} expiry={self.expiry_date}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product,
            "quantity": self.quantity,
            "unit": self.unit,
            "expiry_date": to_iso_date(self.expiry_date),
            "cycle_type": self.cycle_type,
            "cycle_ref": self.cycle_ref,
            "action_taken": self.action_taken,
            "reason": self.reason,
            "supplier": self.supplier,
            "original_value_cents": self.original_value_cents,
            "created_at": to_utc_z(self.created_at),
        }
