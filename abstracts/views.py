from django.contrib import messages
from django.core.exceptions import ValidationError
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from core.api_client import BackendError
from users.decorators import token_required
from .forms import build_abstract_form
from .services import load_abstract_page, submission_deadline, submit_abstract

STATUS_COLORS = {
    'Pending': 'warning',
    'Reviewed': 'info',
    'Accept': 'success',
    'Rejected': 'danger',
}


def _render_page(request, event_id, form=None, page=None):
    if page is None:
        try:
            page = load_abstract_page(request.backend, event_id)
        except BackendError as e:
            messages.error(request, e.message)
            return redirect('event_detail', event_id=event_id)

    abstracts, abstract_settings, categories = page
    if form is None:
        form = build_abstract_form(categories, abstract_settings)()

    for abstract in abstracts:
        abstract['status_color'] = STATUS_COLORS.get(abstract.get('status'), 'secondary')

    return render(request, 'abstracts/my_abstracts.html', {
        'event_id': event_id,
        'abstracts': abstracts,
        'form': form,
        'deadline': submission_deadline(abstract_settings),
        'word_limit': form.word_limit,
    })


@token_required
def my_abstracts_view(request, event_id):
    return _render_page(request, event_id)


@token_required
@require_POST
def submit_abstract_view(request, event_id):
    try:
        page = load_abstract_page(request.backend, event_id)
    except BackendError as e:
        messages.error(request, e.message)
        return redirect('my_abstracts', event_id=event_id)

    _abstracts, abstract_settings, categories = page
    form = build_abstract_form(categories, abstract_settings)(request.POST, request.FILES)

    if not form.is_valid():
        messages.error(request, "Please fix the highlighted fields")
        return _render_page(request, event_id, form=form, page=page)

    try:
        submit_abstract(request.backend, event_id, form, abstract_settings)
    except ValidationError as e:
        messages.error(request, e.messages[0])
        return _render_page(request, event_id, form=form, page=page)
    except BackendError as e:
        messages.error(request, e.message)
        return _render_page(request, event_id, form=form, page=page)

    messages.success(request, "Abstract submitted successfully")
    return redirect('my_abstracts', event_id=event_id)
