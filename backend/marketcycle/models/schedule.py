from __future__ import annotations

from ..extensions import db
from marketcycle.time_utils import to_iso_date


class HarvestPlan(db.Model):
    """Planned planting/harvest of one product by a supplier."""
    __tablename__ = "harvest_plans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    product = db.Column(db.String(255), nullable=False)
    planting_date = db.Column(db.Date, nullable=False)
    harvest_date = db.Column(db.Date, nullable=False)
    estimated_kg = db.Column(db.Float, nullable=True)
    status = db.Column(db.String(64), nullable=True)

    # preparation | planting | harvest
    phase = db.Column(db.String(16), nullable=False, default="preparation")

    supplier = db.relationship("Supplier", backref=db.backref("harvest_plans", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "product": self.product,
            "planting_date": to_iso_date(self.planting_date),
            "harvest_date": to_iso_date(self.harvest_date),
            "estimated_kg": self.estimated_kg,
            "status": self.status,
            "phase": self.phase,
        }
