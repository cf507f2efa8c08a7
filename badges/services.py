# badges/services.py
#
# Proof-of-registration badge: a QR code (segno) and a printable PDF
# (xhtml2pdf) rendered from badges/badge.html.

import base64
import io
import logging

import segno
from django.template.loader import render_to_string
from xhtml2pdf import pisa

from core.api_client import from_backend_profile
from events.dates import format_event_date

logger = logging.getLogger(__name__)


class BadgeRenderError(Exception):
    pass


def generate_qr_png(payload, scale=10, border=2):
    """PNG bytes of a QR code encoding `payload`."""
    qr = segno.make_qr(payload, error='H')
    buf = io.BytesIO()
    qr.save(buf, kind='png', scale=scale, border=border)
    buf.seek(0)
    return buf.read()


def generate_qr_data_uri(payload, scale=6, border=2):
    """Inline <img src> value, usable both in HTML and by xhtml2pdf."""
    png = generate_qr_png(payload, scale=scale, border=border)
    return 'data:image/png;base64,' + base64.b64encode(png).decode('ascii')


def badge_context(registration):
    """
    Display data of a badge. The backend may send the event and the
    category populated (objects) or as ids, so every value has a fallback.
    """
    registration = registration or {}
    event = registration.get('eventId')
    event = event if isinstance(event, dict) else {}
    slab = registration.get('registrationSlabId')

    attendee = from_backend_profile(registration)

    reg_num = registration.get('regNum') or 'N/A'
    category = (slab.get('slabName') if isinstance(slab, dict) else None) \
        or registration.get('registrationCategory') or 'Attendee'

    return {
        'registration_id': registration.get('_id') or '',
        'reg_num': reg_num,
        'prefix': registration.get('prefix') or '',
        'name': attendee.get('full_name') or 'Attendee',
        'category': category,
        'event_name': event.get('eventName') or event.get('title') or registration.get('eventName') or 'Event',
        'event_dates': format_event_date(event.get('startDate'), event.get('endDate')),
        # The QR carries the registration number scanned at check-in
        'qr_payload': reg_num,
    }


def badge_filename(context, ext):
    return f"badge-{context['reg_num'] if context['reg_num'] != 'N/A' else context['registration_id']}.{ext}"


def render_badge_pdf(registration):
    """-> (context, PDF bytes)"""
    context = badge_context(registration)
    context['qr_data_uri'] = generate_qr_data_uri(context['qr_payload'])
    context['for_pdf'] = True

    html_string = render_to_string('badges/badge_pdf.html', context)

    buf = io.BytesIO()
    pisa_status = pisa.CreatePDF(html_string, dest=buf)
    if pisa_status.err:
        logger.error(f"Badge PDF rendering failed for {context['registration_id']}")
        raise BadgeRenderError("Could not generate the badge PDF")

    return context, buf.getvalue()
