"""Script to initialize the database without running migrations."""

import asyncio

from sqlalchemy import text

from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Create every table, then the double-booking exclusion constraint."""
    async with engine.begin() as conn:
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))

        await conn.run_sync(metadata.create_all)

        # Same constraint as migration 004
        await conn.execute(
            text(
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
        )

        print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
