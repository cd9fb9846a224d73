from __future__ import annotations

import time
from datetime import datetime, timezone


def rfc3339_from_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def rfc3339_now() -> str:
    return rfc3339_from_timestamp(time.time())


def parse_rfc3339(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
