from django import template

register = template.Library()


@register.filter
def oid(obj):
    """Backend ids are `_id`, which templates cannot reach directly."""
    if isinstance(obj, dict):
        return obj.get('_id') or obj.get('id') or ''
    return obj or ''


@register.filter
def get_item(mapping, key):
    if not mapping:
        return None
    return mapping.get(key)
