from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Union


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve 'sqlite:///./relative/path' to an absolute sqlite:/// URL.

    Keeps other URL forms unchanged.
    """
    prefix = "sqlite:///./"
    if not url.startswith(prefix):
        return url
    rel = url[len(prefix) :]
    return f"sqlite:///{(project_root / rel).resolve()}"


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    Used when timestamps end up inside JSON audit records.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def as_date(value: Union[date, datetime, str]) -> date:
    """Coerce ``value`` to a :class:`date`.

    Accepts ``date``/``datetime`` objects and ``YYYY-MM-DD`` strings, the form
    draw dates arrive in from result intake.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid date string: {value!r}") from exc
    raise TypeError("value must be a date, datetime or ISO date string")
