"""Path and query parameter parsing shared by the routers."""
from datetime import date
from typing import Optional

from ..services.errors import InvalidInput


def parse_id(raw: str, label: str) -> int:
    try:
        value = int(str(raw))
    except ValueError:
        raise InvalidInput(f"Invalid {label} ID") from None
    if value <= 0:
        raise InvalidInput(f"Invalid {label} ID")
    return value


def parse_date(raw: Optional[str], label: str) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise InvalidInput(f"Invalid {label}, expected YYYY-MM-DD") from None
