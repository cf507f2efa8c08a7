import logging

from django.contrib import messages
from django.shortcuts import render
from django.views.decorators.http import require_GET

from core.api_client import BackendError
from events.services import filter_events, get_events
from payments.services.checkout import is_paid
from users.decorators import token_required
from users.services import display_name

logger = logging.getLogger(__name__)


# -------------------------------------------------------
# ------------------- client Side -----------------------
# -------------------------------------------------------

@token_required
@require_GET
def dashboard_view(request):
    """Live events plus the user's registrations and their payment state."""
    # 1. Events
    try:
        events = get_events(request.backend)
        live_events = filter_events(events, status='Live')
        upcoming_events = filter_events(events, status='Upcoming')
    except BackendError as e:
        messages.error(request, e.message)
        live_events, upcoming_events = [], []

    # 2. Registrations
    try:
        registrations = request.backend.list_my_registrations()
    except BackendError as e:
        logger.warning(f"Dashboard: registrations unavailable ({e})")
        registrations = []

    paid = [r for r in registrations if is_paid(r)]

    context = {
        'name': display_name(request.backend_profile),
        'live_events': live_events[:6],
        'upcoming_events': upcoming_events[:6],
        'registrations': registrations[:5],
        'stats': {
            'registrations': len(registrations),
            'paid': len(paid),
            'unpaid': len(registrations) - len(paid),
        },
    }
    return render(request, 'core/dashboard.html', context)
