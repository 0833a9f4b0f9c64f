"""Prevent overlapping active appointments per doctor.

Two active appointments of the same doctor may not start within the
conflict window of each other. The exclusion constraint closes the race
between the application-level availability check and the insert.

Revision ID: 004
Revises: 003
Create Date: 2026-10-16

"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "004"
down_revision = "003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add the exclusion constraint on doctor slots."""
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # Each appointment occupies [start, start + 30 min]; two such ranges overlap
    # exactly when the starts are at most 30 minutes apart.
    op.execute(
        """
        ALTER TABLE appointments
        ADD CONSTRAINT appointments_no_double_booking
        EXCLUDE USING gist (
            doctor_id WITH =,
            tstzrange(scheduled_at, scheduled_at + interval '30 minutes', '[]') WITH &&
        )
        WHERE (status IN ('AWAITING_ACCEPTANCE', 'PAYMENT_PENDING', 'CONFIRMED'))
        """
    )


def downgrade() -> None:
    """Drop the exclusion constraint."""
    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS appointments_no_double_booking")
