# (c) Copyright Datacraft, 2026
from datetime import datetime, timezone


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
	"""Treat naive datetimes (as SQLite returns them) as UTC."""
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value
