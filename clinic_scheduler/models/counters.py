"""Named monotonic counters backing human-readable sequence numbers."""

from sqlalchemy import BigInteger, Column, String, Table

from clinic_scheduler.models.base import metadata

counters = Table(
    "counters",
    metadata,
    Column("key", String(50), primary_key=True),
    Column("value", BigInteger, nullable=False),
)
