"""
Date normalization for scraped update listings

Turns the free-text dates found in news listings ("2 hours ago",
"Posted on 21 Jul 2024", ISO 8601 stamps) into aware UTC datetimes.
Naive absolute dates are taken to be UTC.
"""
from datetime import datetime, timedelta, timezone
import logging
import re

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

RELATIVE_DATE_PATTERN = re.compile(r'(\S+)\s+(hour|day)s?\s+ago', re.IGNORECASE)
POSTED_ON_PATTERN = re.compile(r'^\s*posted\s+on\s*', re.IGNORECASE)


def normalize_scraped_date(date_str, now=None):
    """
    Parse a scraped date string into an absolute UTC instant

    Never raises. Anything that cannot be understood maps to `now`.

    Args:
        date_str (str): Raw date text, possibly empty or None
        now (datetime): Reference instant (aware); defaults to current UTC time

    Returns:
        datetime: Timezone-aware UTC datetime

    Examples:
        >>> ref = datetime(2024, 7, 22, 12, 0, tzinfo=timezone.utc)
        >>> normalize_scraped_date('2 hours ago', now=ref)
        datetime.datetime(2024, 7, 22, 10, 0, tzinfo=datetime.timezone.utc)
        >>> normalize_scraped_date('Posted on 21 Jul 2024', now=ref)
        datetime.datetime(2024, 7, 21, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if not date_str or not str(date_str).strip():
        return now

    text = str(date_str).strip()

    relative = RELATIVE_DATE_PATTERN.search(text)
    if relative:
        try:
            amount = int(relative.group(1))
        except ValueError:
            return now
        unit = relative.group(2).lower()
        try:
            if unit == 'hour':
                return now - timedelta(hours=amount)
            return now - timedelta(days=amount)
        except (OverflowError, ValueError) as e:
            logger.debug(f"Relative date out of range: \"{date_str}\" ({e})")
            return now

    cleaned = POSTED_ON_PATTERN.sub('', text)
    if not cleaned:
        return now

    try:
        default = datetime(now.year, now.month, now.day)
        parsed = date_parser.parse(cleaned, default=default)
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug(f"Could not parse date: \"{date_str}\" ({e})")
        return now

    try:
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError) as e:
        logger.debug(f"Date out of range after UTC conversion: \"{date_str}\" ({e})")
        return now
