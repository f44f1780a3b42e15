"""Initial schema: catalog, cycles, markets, expired log, harvest plans

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "reference_products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120), nullable=True),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("reference_price_cents", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "unit", name="uq_reference_products_name_unit"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reference_products", schema=None) as batch_op:
        batch_op.create_index("ix_reference_products_category_active", ["category", "is_active"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "cycles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(120), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.String(120), nullable=True),
        sa.Column("seeded_from_cycle_id", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.ForeignKeyConstraint(["seeded_from_cycle_id"], ["cycles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cycles", schema=None) as batch_op:
        batch_op.create_index("ix_cycles_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_cycles_supplier_published", ["supplier_id", "is_published"], unique=False)

    op.create_table(
        "cycle_products",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("cycle_id", sa.Integer(), nullable=False),
        sa.Column("reference_product_id", sa.Integer(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("conversion_factor", sa.Float(), nullable=False, server_default=sa.text("1.0")),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("available_quantity", sa.Float(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("certified", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("family_farming", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("rejection_reason", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.String(120), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["cycle_id"], ["cycles.id"]),
        sa.ForeignKeyConstraint(["reference_product_id"], ["reference_products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("cycle_products", schema=None) as batch_op:
        batch_op.create_index("ix_cycle_products_cycle_id", ["cycle_id"], unique=False)
        batch_op.create_index("ix_cycle_products_reference_product_id", ["reference_product_id"], unique=False)
        batch_op.create_index("ix_cycle_products_cycle_status", ["cycle_id", "status"], unique=False)

    op.create_table(
        "markets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("market_type", sa.String(16), nullable=False),
        sa.Column("administrator_id", sa.Integer(), nullable=False),
        sa.Column("administrative_fee_bps", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("markets", schema=None) as batch_op:
        batch_op.create_index("ix_markets_status", ["status"], unique=False)

    op.create_table(
        "market_delivery_points",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("market_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["market_id"], ["markets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("market_id", "position", name="uq_market_delivery_points_position"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("market_delivery_points", schema=None) as batch_op:
        batch_op.create_index("ix_market_delivery_points_market_id", ["market_id"], unique=False)

    op.create_table(
        "market_products",
        sa.Column("market_id", sa.Integer(), nullable=False),
        sa.Column("reference_product_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["market_id"], ["markets.id"]),
        sa.ForeignKeyConstraint(["reference_product_id"], ["reference_products.id"]),
        sa.PrimaryKeyConstraint("market_id", "reference_product_id"),
    )

    op.create_table(
        "expired_product_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("cycle_type", sa.String(16), nullable=False),
        sa.Column("cycle_ref", sa.String(120), nullable=True),
        sa.Column("action_taken", sa.String(16), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("supplier", sa.String(255), nullable=True),
        sa.Column("original_value_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("expired_product_entries", schema=None) as batch_op:
        batch_op.create_index("ix_expired_product_entries_expiry", ["expiry_date"], unique=False)

    op.create_table(
        "harvest_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("product", sa.String(255), nullable=False),
        sa.Column("planting_date", sa.Date(), nullable=False),
        sa.Column("harvest_date", sa.Date(), nullable=False),
        sa.Column("estimated_kg", sa.Float(), nullable=True),
        sa.Column("status", sa.String(64), nullable=True),
        sa.Column("phase", sa.String(16), nullable=False, server_default="preparation"),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("harvest_plans", schema=None) as batch_op:
        batch_op.create_index("ix_harvest_plans_supplier_id", ["supplier_id"], unique=False)


def downgrade():
    with op.batch_alter_table("harvest_plans", schema=None) as batch_op:
        batch_op.drop_index("ix_harvest_plans_supplier_id")
    op.drop_table("harvest_plans")

    with op.batch_alter_table("expired_product_entries", schema=None) as batch_op:
        batch_op.drop_index("ix_expired_product_entries_expiry")
    op.drop_table("expired_product_entries")

    op.drop_table("market_products")

    with op.batch_alter_table("market_delivery_points", schema=None) as batch_op:
        batch_op.drop_index("ix_market_delivery_points_market_id")
    op.drop_table("market_delivery_points")

    with op.batch_alter_table("markets", schema=None) as batch_op:
        batch_op.drop_index("ix_markets_status")
    op.drop_table("markets")

    with op.batch_alter_table("cycle_products", schema=None) as batch_op:
        batch_op.drop_index("ix_cycle_products_cycle_status")
        batch_op.drop_index("ix_cycle_products_reference_product_id")
        batch_op.drop_index("ix_cycle_products_cycle_id")
    op.drop_table("cycle_products")

    with op.batch_alter_table("cycles", schema=None) as batch_op:
        batch_op.drop_index("ix_cycles_supplier_published")
        batch_op.drop_index("ix_cycles_supplier_id")
    op.drop_table("cycles")

    op.drop_table("suppliers")

    with op.batch_alter_table("reference_products", schema=None) as batch_op:
        batch_op.drop_index("ix_reference_products_category_active")
    op.drop_table("reference_products")
