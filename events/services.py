import logging

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from .dates import parse_event_date, parse_iso

logger = logging.getLogger(__name__)

STATUS_TABS = ('Live', 'Upcoming', 'Past')


def _cached(key, loader):
    data = cache.get(key)
    if data is None:
        data = loader()
        cache.set(key, data, settings.EVENT_CACHE_SECONDS)
        logger.debug(f"Cache miss: {key}")
    return data


# ==========================================
# 1. EVENTS
# ==========================================


def get_events(client):
    return _cached('events:list', client.list_events)


def get_event(client, event_id):
    return _cached(f'events:detail:{event_id}', lambda: client.get_event(event_id))


def get_registration_settings(client, event_id):
    return _cached(f'events:registration-settings:{event_id}',
                   lambda: client.get_registration_settings(event_id) or {})


def clear_event_cache(event_id=None):
    keys = ['events:list']
    if event_id:
        keys += [f'events:detail:{event_id}', f'events:registration-settings:{event_id}']
    cache.delete_many(keys)


def filter_events(events, status=None, query=''):
    """Status tab (Live / Upcoming / Past) and a name search."""
    results = list(events or [])
    if status in STATUS_TABS:
        results = [e for e in results if e.get('dynamicStatus') == status]
    if query:
        q = query.strip().lower()
        results = [
            e for e in results
            if q in (e.get('eventName') or '').lower() or q in (e.get('shortName') or '').lower()
        ]
    # Soonest first; unparseable dates last
    return sorted(results, key=lambda e: (parse_event_date(e.get('startDate')) is None,
                                          parse_event_date(e.get('startDate')) or timezone.localdate()))


# ==========================================
# 2. REGISTRATION WINDOW
# ==========================================


def registration_status(reg_settings, today=None):
    """
    -> (is_open, message)
    No settings at all means the backend does not restrict registration.
    """
    if not reg_settings:
        return True, ''

    if reg_settings.get('attendeeRegistration') is False:
        return False, "Registration is not available for this event"

    today = today or timezone.localdate()
    start = parse_iso(reg_settings.get('eventRegistrationStartDate'))
    end = parse_iso(reg_settings.get('eventRegistrationEndDate'))

    if start and today < start:
        return False, "Registration has not opened yet"
    if end and today > end:
        return False, "Registration is closed for this event"
    return True, ''


def accompanying_enabled(reg_settings):
    return bool((reg_settings or {}).get('accompanyRegistration'))
