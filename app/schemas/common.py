from typing import Optional, List, Generic, TypeVar, Any
from pydantic import BaseModel

from app.utils.availability import WEEKDAYS, ServiceConfigError, parse_hhmm, format_hhmm

T = TypeVar("T")


# Paginated response wrapper — used by all list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses
class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[dict[str, Any]] = None


def normalize_hhmm(value: str) -> str:
    """Accept "9:00" or "09:00", always return zero-padded "HH:MM"."""
    try:
        return format_hhmm(parse_hhmm(value))
    except ServiceConfigError as e:
        raise ValueError(str(e))


def normalize_weekdays(days: List[str]) -> List[str]:
    out = []
    for day in days:
        name = day.strip().upper()
        if name not in WEEKDAYS:
            raise ValueError(f"Unknown weekday {day!r}")
        if name not in out:
            out.append(name)
    # Keep calendar order for display
    return sorted(out, key=WEEKDAYS.index)
