from __future__ import annotations

import uuid

from ..extensions import db
from marketcycle.time_utils import to_iso_date, to_utc_z


def new_product_id() -> str:
    return uuid.uuid4().hex


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Cycle(db.Model):
    """
    A supplier's offer for one sales cycle.

    LIFECYCLE:
    - Current: is_published=False. Offers can be added, edited, approved.
    - Published: is_published=True. Read-only; the approved offers form the
      published set, the rest stays as history for reuse.

    A supplier has at most one current cycle at a time.
    """
    __tablename__ = "cycles"
    __table_args__ = (
        db.Index("ix_cycles_supplier_published", "supplier_id", "is_published"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    label = db.Column(db.String(120), nullable=True)

    is_published = db.Column(db.Boolean, nullable=False, default=False)
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)
    published_by = db.Column(db.String(120), nullable=True)

    seeded_from_cycle_id = db.Column(db.Integer, db.ForeignKey("cycles.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("cycles", lazy=True))
    products = db.relationship(
        "ProductInCycle",
        back_populates="cycle",
        lazy=True,
        order_by="ProductInCycle.position",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Cycle id={self.id} supplier_id={self.supplier_id} published={self.is_published}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "label": self.label,
            "is_published": self.is_published,
            "published_at": to_utc_z(self.published_at),
            "published_by": self.published_by,
            "seeded_from_cycle_id": self.seeded_from_cycle_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class ProductInCycle(db.Model):
    """
    A supplier's offer of one product within one cycle.

    STATUS: draft | approved | rejected (see services/transitions.py).

    The id is a uuid4 hex string so reused drafts can carry a fresh id
    before the caller decides to insert them.

    conversion_factor is the ratio of `unit` to the canonical mass/volume
    unit (kg or l); it must be > 0.
    """
    __tablename__ = "cycle_products"
    __table_args__ = (
        db.Index("ix_cycle_products_cycle_status", "cycle_id", "status"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_product_id)
    cycle_id = db.Column(db.Integer, db.ForeignKey("cycles.id"), nullable=False, index=True)
    reference_product_id = db.Column(db.Integer, db.ForeignKey("reference_products.id"), nullable=True, index=True)
    # Insertion order within the cycle
    position = db.Column(db.Integer, nullable=False, default=0)

    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    conversion_factor = db.Column(db.Float, nullable=False, default=1.0)
    price_cents = db.Column(db.Integer, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)
    available_quantity = db.Column(db.Float, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="draft")

    certified = db.Column(db.Boolean, nullable=False, default=False)
    family_farming = db.Column(db.Boolean, nullable=False, default=False)

    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_by = db.Column(db.String(120), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    cycle = db.relationship("Cycle", back_populates="products")
    reference_product = db.relationship("ReferenceProduct")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ProductInCycle id={self.id} cycle_id={self.cycle_id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cycle_id": self.cycle_id,
            "reference_product_id": self.reference_product_id,
            "position": self.position,
            "name": self.name,
            "unit": self.unit,
            "conversion_factor": self.conversion_factor,
            "price_cents": self.price_cents,
            "expiry_date": to_iso_date(self.expiry_date),
            "available_quantity": self.available_quantity,
            "status": self.status,
            "certified": self.certified,
            "family_farming": self.family_farming,
            "description": self.description,
            "image_url": self.image_url,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "updated_by": self.updated_by,
            "version_id": self.version_id,
        }
