from django.contrib import messages
from django.http import Http404
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET

from core.api_client import BackendError, BackendUnavailable
from users.decorators import token_required
from .services import (STATUS_TABS, filter_events, get_event, get_events,
                       get_registration_settings, registration_status)


@token_required
@require_GET
def event_list_view(request):
    status = request.GET.get('status', '')
    query = request.GET.get('q', '')

    try:
        events = get_events(request.backend)
    except BackendError as e:
        messages.error(request, e.message)
        events = []

    context = {
        'events': filter_events(events, status, query),
        'status_tabs': STATUS_TABS,
        'current_status': status,
        'search_query': query,
    }
    return render(request, 'events/event_list.html', context)


@token_required
@require_GET
def event_detail_view(request, event_id):
    try:
        event = get_event(request.backend, event_id)
    except BackendUnavailable as e:
        messages.error(request, e.message)
        return redirect('event_list')
    except BackendError as e:
        if e.status_code == 404:
            raise Http404(e.message)
        messages.error(request, e.message)
        return redirect('event_list')

    try:
        reg_settings = get_registration_settings(request.backend, event_id)
    except BackendError:
        reg_settings = {}

    is_open, closed_message = registration_status(reg_settings)

    return render(request, 'events/event_detail.html', {
        'event': event,
        'event_id': event_id,
        'registration_open': is_open,
        'closed_message': closed_message,
    })
