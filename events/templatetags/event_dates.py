from django import template

from ..dates import format_event_date, format_slab_validity

register = template.Library()


@register.filter
def event_date(event):
    """{{ event|event_date }}, single-day events may carry no endDate."""
    event = event or {}
    return format_event_date(event.get('startDate'), event.get('endDate'))


@register.simple_tag
def slab_validity(start_iso, end_iso):
    return format_slab_validity(start_iso, end_iso)


@register.filter
def venue(event):
    """The venue may come as a nested object or a plain name."""
    value = (event or {}).get('venueName')
    if isinstance(value, dict):
        return value.get('venueName') or ''
    return value or ''
