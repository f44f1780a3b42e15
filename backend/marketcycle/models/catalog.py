from __future__ import annotations

from ..extensions import db
from marketcycle.time_utils import to_utc_z


class ReferenceProduct(db.Model):
    """
    Reference catalog entry maintained by administrators.

    Suppliers use it as a template when creating an offer for a cycle
    (name, category, unit and a suggested price). Suppliers never edit it;
    administrators only deactivate entries that should stop being offered.
    """
    __tablename__ = "reference_products"
    __table_args__ = (
        db.UniqueConstraint("name", "unit", name="uq_reference_products_name_unit"),
        db.Index("ix_reference_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    unit = db.Column(db.String(32), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    reference_price_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<ReferenceProduct id={self.id} name={self.name!r} unit={self.unit!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "reference_price_cents": self.reference_price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
