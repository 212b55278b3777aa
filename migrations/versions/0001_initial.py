"""Initial schema: trips"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "trips",
        sa.Column("trip_id", sa.String, primary_key=True),
        sa.Column("rider_id", sa.String, nullable=False),
        sa.Column("driver_id", sa.String, nullable=True),
        sa.Column("pickup_location", sa.Text, nullable=False),
        sa.Column("drop_location", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="REQUESTED"),
        sa.Column("fare", sa.Numeric(10, 2), nullable=True),
        sa.Column("distance", sa.Numeric(10, 3), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_trips_status", "trips", ["status"])
    op.create_index("ix_trips_rider_id", "trips", ["rider_id"])


def downgrade() -> None:
    op.drop_index("ix_trips_rider_id", table_name="trips")
    op.drop_index("ix_trips_status", table_name="trips")
    op.drop_table("trips")
