from __future__ import annotations

from datetime import datetime, timezone

# French names, indexed like datetime.weekday() / datetime.month
_DAYS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_french_datetime(dt: datetime) -> str:
    # "samedi 12 octobre 2024 à 14:30"
    return f"{_DAYS[dt.weekday()]} {dt.day} {_MONTHS[dt.month - 1]} {dt.year} à {dt:%H:%M}"
