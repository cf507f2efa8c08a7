import logging

from core.api_client import from_backend_profile
from registrations.services import checkout_session_key

logger = logging.getLogger(__name__)

OWNED_ATTEMPTS_KEY = 'payment_attempts'


def _ref_id(value):
    """Backend references come either populated ({_id: ...}) or as bare ids."""
    if isinstance(value, dict):
        return value.get('_id') or value.get('id') or ''
    return value or ''


def is_paid(registration):
    registration = registration or {}
    status = str(registration.get('paymentStatus') or '').lower()
    return bool(registration.get('isPaid')) or status in ('paid', 'completed', 'success')


def checkout_context_from_registration(registration):
    """A registration as returned by the backend -> checkout context."""
    registration = registration or {}
    slab = registration.get('registrationSlabId')
    amount = registration.get('amount') or registration.get('totalAmount')
    if amount in (None, '') and isinstance(slab, dict):
        amount = slab.get('amount')
    contact = from_backend_profile(registration)

    return {
        'event_id': _ref_id(registration.get('eventId')),
        'amount': str(amount or 0),
        'category_name': slab.get('slabName', '') if isinstance(slab, dict) else '',
        'prefill': {
            'name': contact.get('full_name') or '',
            'email': contact.get('email') or '',
            'contact': contact.get('phone') or '',
        },
        'is_paid': is_paid(registration),
    }


def resolve_checkout_context(session, client, registration_id):
    """
    The confirm step leaves the context in the session; paying later from
    "my registrations" falls back to the backend copy of the registration.
    """
    context = session.get(checkout_session_key(registration_id))
    if context:
        return context

    registration = client.get_registration(registration_id)
    logger.info(f"Checkout context for {registration_id} loaded from the backend")
    return checkout_context_from_registration(registration)


def remember_attempt(session, attempt):
    owned = list(session.get(OWNED_ATTEMPTS_KEY, []))
    owned.append(attempt.id)
    session[OWNED_ATTEMPTS_KEY] = owned[-20:]


def owns_attempt(session, attempt_id):
    return int(attempt_id) in session.get(OWNED_ATTEMPTS_KEY, [])


def forget_checkout(session, registration_id):
    session.pop(checkout_session_key(registration_id), None)
