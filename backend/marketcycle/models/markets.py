from __future__ import annotations

from ..extensions import db
from marketcycle.time_utils import to_utc_z


# Association: which reference products a market offers
market_products = db.Table(
    "market_products",
    db.Column("market_id", db.Integer, db.ForeignKey("markets.id"), primary_key=True),
    db.Column("reference_product_id", db.Integer, db.ForeignKey("reference_products.id"), primary_key=True),
)


class Market(db.Model):
    """
    A local market (basket program, direct sale point or lot auction).

    FEE: administrative_fee_bps only applies to basket and lot markets;
    direct_sale markets always store NULL.
    """
    __tablename__ = "markets"
    __table_args__ = (
        db.Index("ix_markets_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="active")
    market_type = db.Column(db.String(16), nullable=False)
    administrator_id = db.Column(db.Integer, nullable=False)
    administrative_fee_bps = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    delivery_points = db.relationship(
        "MarketDeliveryPoint",
        back_populates="market",
        order_by="MarketDeliveryPoint.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    products = db.relationship(
        "ReferenceProduct",
        secondary=market_products,
        order_by="ReferenceProduct.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Market id={self.id} name={self.name!r} type={self.market_type}>"

    def to_dict(self) -> dict:
        product_ids = [p.id for p in self.products]
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "market_type": self.market_type,
            "administrator_id": self.administrator_id,
            "administrative_fee_bps": self.administrative_fee_bps,
            "delivery_points": [dp.name for dp in self.delivery_points],
            "product_ids": product_ids,
            "total_products": len(product_ids),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class MarketDeliveryPoint(db.Model):
    __tablename__ = "market_delivery_points"
    __table_args__ = (
        db.UniqueConstraint("market_id", "position", name="uq_market_delivery_points_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    market_id = db.Column(db.Integer, db.ForeignKey("markets.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    market = db.relationship("Market", back_populates="delivery_points")

    def __repr__(self) -> str:
        return f"<MarketDeliveryPoint id={self.id} market_id={self.market_id} name={self.name!r}>"
