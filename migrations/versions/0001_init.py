from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sellers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("seller_type", sa.String(length=40), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=40), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
    )
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=True),
        sa.Column("make", sa.String(length=80), nullable=True),
        sa.Column("model", sa.String(length=120), nullable=True),
        sa.Column("trim", sa.String(length=120), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("mileage", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment", sa.Numeric(10, 2), nullable=True),
        sa.Column("condition", sa.String(length=40), nullable=True),
        sa.Column("body_style", sa.String(length=80), nullable=True),
        sa.Column("drivetrain", sa.String(length=40), nullable=True),
        sa.Column("transmission", sa.String(length=80), nullable=True),
        sa.Column("fuel_type", sa.String(length=40), nullable=True),
        sa.Column("exterior_color", sa.String(length=80), nullable=True),
        sa.Column("interior_color", sa.String(length=80), nullable=True),
        sa.Column("seller_type", sa.String(length=40), nullable=True),
        sa.Column("dealer_name", sa.String(length=200), nullable=True),
        sa.Column("dealer_account", sa.String(length=64), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=40), nullable=True),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("listed_at", sa.DateTime(), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("external_id", name="uq_vehicles_external"),
    )
    op.create_index("ix_vehicles_make", "vehicles", ["make"])
    op.create_index("ix_vehicles_model", "vehicles", ["model"])
    op.create_index("ix_vehicles_year", "vehicles", ["year"])
    op.create_index("ix_vehicles_mileage", "vehicles", ["mileage"])
    op.create_index("ix_vehicles_price", "vehicles", ["price"])
    op.create_index("ix_vehicles_dealer_account", "vehicles", ["dealer_account"])
    op.create_index("ix_vehicles_is_available", "vehicles", ["is_available"])


def downgrade() -> None:
    op.drop_index("ix_vehicles_is_available", table_name="vehicles")
    op.drop_index("ix_vehicles_dealer_account", table_name="vehicles")
    op.drop_index("ix_vehicles_price", table_name="vehicles")
    op.drop_index("ix_vehicles_mileage", table_name="vehicles")
    op.drop_index("ix_vehicles_year", table_name="vehicles")
    op.drop_index("ix_vehicles_model", table_name="vehicles")
    op.drop_index("ix_vehicles_make", table_name="vehicles")
    op.drop_table("vehicles")
    op.drop_table("sellers")
