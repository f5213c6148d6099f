import time
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time in UTC (naive, canonical for storage)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_seconds() -> int:
    return int(time.time())


def generate_id() -> str:
    """Opaque string identifier for new entities."""
    return uuid.uuid4().hex
