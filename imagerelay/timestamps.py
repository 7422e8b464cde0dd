from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime | None = None) -> str:
    """Millisecond-precision UTC timestamp, e.g. ``2024-05-01T09:30:12.345Z``."""
    moment = (moment or utc_now()).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def epoch_millis(moment: datetime | None = None) -> int:
    moment = moment or utc_now()
    return int(moment.timestamp() * 1000)


__all__ = ["utc_now", "iso_timestamp", "epoch_millis"]
