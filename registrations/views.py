import logging

from django.contrib import messages
from django.core.exceptions import ValidationError
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_GET, require_POST

from core.api_client import BackendError
from events.services import accompanying_enabled, get_event, get_registration_settings, registration_status
from users.decorators import token_required
from users.services import get_profile
from .forms import AccompanyingFormSet, initial_from_persons
from .services import (checkout_session_key, form_class_for, load_descriptors, load_meal_choices,
                       prefill_from_profile, registration_amount, submit_registration, summary_rows)
from .store import ADDITIONAL, DYNAMIC, STEP_ACCOMPANYING, STEP_CONFIRM, STEP_DETAILS, RegistrationDraft
from .uploads import format_file_size
from .validators import MissingRequiredFile

logger = logging.getLogger(__name__)


def _load_flow(request, event_id):
    """
    -> (event, reg_settings, draft, store) or raises BackendError.
    Shared by every step of the flow.
    """
    event = get_event(request.backend, event_id)
    try:
        reg_settings = get_registration_settings(request.backend, event_id)
    except BackendError:
        reg_settings = {}

    draft = RegistrationDraft(request.session, event_id)
    store = load_descriptors(request.backend, draft)
    return event, reg_settings, draft, store


def _steps(reg_settings):
    steps = [(STEP_DETAILS, "Basic Details")]
    if accompanying_enabled(reg_settings):
        steps.append((STEP_ACCOMPANYING, "Accompanying Persons"))
    steps.append((STEP_CONFIRM, "Confirm & Pay"))
    return steps


def _file_context(view):
    files = {}
    for bucket, prefix in ((ADDITIONAL, 'additional_'), (DYNAMIC, 'dynamic_')):
        for fid, ref in view.files(bucket).items():
            files[f"{prefix}{fid}"] = {
                'bucket': bucket,
                'field_id': fid,
                'name': ref.name,
                'size': format_file_size(ref.size) if ref.size else '',
                'url': ref.url,
            }
    return files


# ========================================================
# 1. STEP 1: BASIC DETAILS + CATEGORY + EXTRA FIELDS
# ========================================================


@token_required
def registration_details_view(request, event_id):
    try:
        event, reg_settings, draft, store = _load_flow(request, event_id)
    except BackendError as e:
        messages.error(request, e.message)
        return redirect('event_list')

    is_open, closed_message = registration_status(reg_settings)
    if not is_open:
        messages.error(request, closed_message)
        return redirect('event_detail', event_id=event_id)

    if not store.categories:
        messages.error(request, "No registration categories are open for this event")
        return redirect('event_detail', event_id=event_id)

    try:
        prefill_from_profile(draft, get_profile(request))
    except BackendError as e:
        logger.warning(f"Profile prefill skipped: {e}")

    meal_choices = load_meal_choices(request.backend, event_id)
    view = draft.view()
    action = request.POST.get('action', 'next')

    # 1. Category switch: rebuild the form for the new category, keep typed data
    if request.method == 'POST' and action == 'switch_category':
        category = store.category(request.POST.get('category_id'))
        draft.select_category(category)
        form_class = form_class_for(store, draft.view().category_id, meal_choices)
        initial = dict(draft.view().initial_form_data())
        initial.update({k: v for k, v in request.POST.items() if k in form_class.base_fields
                        and not k.startswith(('additional_', 'dynamic_'))})
        form = form_class(initial=initial)

    # 2. Submit: validate against the schema of the posted category
    elif request.method == 'POST':
        form_class = form_class_for(store, request.POST.get('category_id'), meal_choices)
        form = form_class(request.POST, request.FILES, initial=view.initial_form_data())

        if form.is_valid():
            draft.save_step(form.cleaned_data, form_class)
            next_step = STEP_ACCOMPANYING if accompanying_enabled(reg_settings) else STEP_CONFIRM
            draft.set_step(next_step)
            if next_step == STEP_ACCOMPANYING:
                return redirect('registration_accompanying', event_id=event_id)
            return redirect('registration_confirm', event_id=event_id)

        messages.error(request, "Please fix the highlighted fields")

    else:
        form_class = form_class_for(store, view.category_id, meal_choices)
        form = form_class(initial=view.initial_form_data())

    # 3. Coming back from the confirm step for a missing file
    missing = request.GET.get('missing')
    if missing not in form.fields:
        missing = None

    try:
        terms = request.backend.list_terms(event_id)
    except BackendError:
        terms = []

    return render(request, 'registrations/step_details.html', {
        'event': event,
        'event_id': event_id,
        'form': form,
        'categories': store.categories,
        'selected_category': form_class.category,
        'current_files': _file_context(draft.view()),
        'missing_field': missing,
        'terms': terms,
        'steps': _steps(reg_settings),
        'current_step': STEP_DETAILS,
    })


@token_required
@require_POST
def registration_clear_file_view(request, event_id, bucket, field_id):
    if bucket not in (ADDITIONAL, DYNAMIC):
        messages.error(request, "Unknown file field")
        return redirect('registration_details', event_id=event_id)

    RegistrationDraft(request.session, event_id).clear_file(bucket, field_id)
    messages.info(request, "File removed")
    return redirect('registration_details', event_id=event_id)


# ========================================================
# 2. STEP 2: ACCOMPANYING PERSONS
# ========================================================


@token_required
def registration_accompanying_view(request, event_id):
    try:
        event, reg_settings, draft, store = _load_flow(request, event_id)
    except BackendError as e:
        messages.error(request, e.message)
        return redirect('event_list')

    view = draft.view()
    if view.schema_key is None:
        return redirect('registration_details', event_id=event_id)

    if not accompanying_enabled(reg_settings):
        return redirect('registration_confirm', event_id=event_id)

    form_kwargs = {'meal_choices': load_meal_choices(request.backend, event_id)}

    if request.method == 'POST':
        if request.POST.get('action') == 'skip':
            draft.set_accompanying([], skipped=True)
            draft.set_step(STEP_CONFIRM)
            return redirect('registration_confirm', event_id=event_id)

        formset = AccompanyingFormSet(request.POST, form_kwargs=form_kwargs, prefix='persons')
        if formset.is_valid():
            draft.set_accompanying(formset.persons())
            draft.set_step(STEP_CONFIRM)
            return redirect('registration_confirm', event_id=event_id)

        messages.error(request, "Please fix the highlighted fields")
    else:
        formset = AccompanyingFormSet(
            initial=initial_from_persons(view.accompanying_persons),
            form_kwargs=form_kwargs, prefix='persons')

    category = store.category(view.category_id)
    return render(request, 'registrations/step_accompanying.html', {
        'event': event,
        'event_id': event_id,
        'formset': formset,
        'accompany_amount': category.accompany_amount if category else None,
        'steps': _steps(reg_settings),
        'current_step': STEP_ACCOMPANYING,
    })


# ========================================================
# 3. STEP 3: CONFIRM -> SUBMIT -> CHECKOUT
# ========================================================


@token_required
def registration_confirm_view(request, event_id):
    try:
        event, reg_settings, draft, store = _load_flow(request, event_id)
    except BackendError as e:
        messages.error(request, e.message)
        return redirect('event_list')

    view = draft.view()
    if view.schema_key is None:
        return redirect('registration_details', event_id=event_id)

    if request.method == 'POST':
        try:
            result = submit_registration(request.backend, draft)

        except MissingRequiredFile as e:
            messages.error(request, e.messages[0])
            draft.set_step(e.step)
            url = reverse('registration_details', kwargs={'event_id': event_id})
            return redirect(f"{url}?missing={e.field_key}")

        except ValidationError as e:
            messages.error(request, e.messages[0])
            draft.set_step(STEP_DETAILS)
            return redirect('registration_details', event_id=event_id)

        except BackendError as e:
            messages.error(request, e.message)
            if 'File upload required' in e.message:
                draft.set_step(STEP_DETAILS)
                return redirect('registration_details', event_id=event_id)
            # "Already registered" and other backend refusals stay here

        else:
            request.session[checkout_session_key(result.registration_id)] = result.to_checkout()
            messages.success(request, "Registration submitted. Complete the payment to confirm it.")
            return redirect('payment_checkout', registration_id=result.registration_id)

        view = draft.view()

    category = store.category(view.category_id)
    persons = [] if view.skipped_accompanying else view.accompanying_persons

    return render(request, 'registrations/step_confirm.html', {
        'event': event,
        'event_id': event_id,
        'basic': view.basic,
        'category': category,
        'answers': summary_rows(view, store),
        'persons': persons,
        'amount': registration_amount(category, len(persons)),
        'steps': _steps(reg_settings),
        'current_step': STEP_CONFIRM,
    })


# ========================================================
# 4. MY REGISTRATIONS
# ========================================================


@token_required
@require_GET
def my_registrations_view(request):
    try:
        registrations = request.backend.list_my_registrations()
    except BackendError as e:
        messages.error(request, e.message)
        registrations = []

    return render(request, 'registrations/my_registrations.html', {
        'registrations': registrations,
    })
