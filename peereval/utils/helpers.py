import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

def get_utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)

def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    SQLite hands timezone-aware columns back as naive values, so everything
    read from the store goes through here before being compared.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime to ISO format with timezone"""
    if dt is None:
        return None
    return as_utc(dt).isoformat()

def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round halves away from zero (2.5 -> 3), unlike the built-in round.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        The rounded value; an int when digits is 0
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)

def sanitize_filename(filename: str) -> str:
    """
    Sanitize a filename for use in a Content-Disposition header

    Args:
        filename: Original filename

    Returns:
        Sanitized ASCII filename
    """
    # Remove invalid characters
    filename = re.sub(r'[<>:"/\\|?*]', '', filename)
    # Remove control and non-ASCII characters
    filename = "".join(char for char in filename if 32 <= ord(char) < 127)
    return filename.strip()
