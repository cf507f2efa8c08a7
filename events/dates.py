from datetime import date, datetime

from django.utils import timezone
from django.utils.dateparse import parse_datetime, parse_date

MONTHS_SHORT = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')
MONTHS_LONG = ('January', 'February', 'March', 'April', 'May', 'June', 'July',
               'August', 'September', 'October', 'November', 'December')


def parse_event_date(value):
    """'28/10/2025' -> date(2025, 10, 28); anything else -> None"""
    if not value:
        return None
    try:
        day, month, year = (int(part) for part in str(value).strip().split('/'))
        return date(year, month, day)
    except ValueError:
        return None


def parse_iso(value):
    """ISO date or datetime string -> date (local), None when unparseable."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parsed = parse_datetime(text.replace('Z', '+00:00'))
    except ValueError:
        parsed = None
    if parsed is not None:
        if timezone.is_aware(parsed):
            parsed = timezone.localtime(parsed)
        return parsed.date()
    try:
        return parse_date(text)
    except ValueError:
        return None


def _short(d):
    return f"{d.day} {MONTHS_SHORT[d.month - 1]} {d.year}"


def _long(d):
    return f"{d.day} {MONTHS_LONG[d.month - 1]} {d.year}"


def format_event_date(start_date, end_date=None):
    """
    '28/10/2025', '30/10/2025' -> '28 Oct 2025 – 30 Oct 2025'
    A missing or identical end date shows the start date once.
    """
    start = parse_event_date(start_date)
    if start is None:
        return ''

    end = parse_event_date(end_date)
    if end is None or end == start:
        return _short(start)

    return f"{_short(start)} – {_short(end)}"


def format_slab_validity(start_iso, end_iso, today=None):
    """'Valid till 30 November 2025' or 'Validity expired on ...'"""
    if not start_iso or not end_iso:
        return ''

    start = parse_iso(start_iso)
    end = parse_iso(end_iso)
    if start is None or end is None:
        return ''

    today = today or timezone.localdate()
    if today <= end:
        return f"Valid till {_long(end)}"
    return f"Validity expired on {_long(end)}"
