"""
Zeitquelle des Cores (naive UTC-Zeitstempel wie in der Datenbank gespeichert)
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
