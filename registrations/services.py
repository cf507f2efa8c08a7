import logging
from decimal import Decimal

from django.core.exceptions import ValidationError

from core.api_client import BackendError, from_backend_profile
from .descriptors import FieldDescriptorStore
from .normalizer import normalize_draft
from .schema import build_registration_form, category_choices_for, meal_choices_for
from .store import ADDITIONAL, DYNAMIC
from .validators import check_required_files

logger = logging.getLogger(__name__)

ALREADY_REGISTERED_MESSAGE = "You are already registered for this event"
INCOMPLETE_MESSAGE = "Please complete all required details before submitting."

# Session entry handed from the confirm step to the checkout page
CHECKOUT_SESSION_PREFIX = 'checkout'


def checkout_session_key(registration_id):
    return f"{CHECKOUT_SESSION_PREFIX}:{registration_id}"


# =========================================================
# 1. LOADING THE FLOW
# =========================================================


def load_descriptors(client, draft):
    """
    Descriptors are fetched once per flow and kept in the draft, so every
    later step validates against the same field set.
    """
    store = draft.descriptors()
    if store is not None:
        return store

    event_id = draft.event_id
    slabs = client.list_slabs(event_id)
    form_fields = client.list_form_fields(event_id)
    store = FieldDescriptorStore.from_api(event_id, slabs, form_fields)
    draft.set_descriptors(store)

    logger.info(
        f"Event {event_id}: loaded {len(store.categories)} categories, {len(store.dynamic_fields)} dynamic fields")
    return store


def load_meal_choices(client, event_id):
    try:
        meals = client.list_meal_preferences(event_id)
    except BackendError as e:
        logger.warning(f"Event {event_id}: meal preferences unavailable ({e}), using defaults")
        meals = []
    return meal_choices_for(meals)


def form_class_for(store, category_id, meal_choices=None):
    """The step 1 form class for the category currently selected."""
    category = store.category(category_id)
    return build_registration_form(
        category,
        store.dynamic_fields,
        meal_choices=meal_choices,
        category_choices=category_choices_for(store),
    )


def prefill_from_profile(draft, profile):
    """
    Seeds an empty basic bucket from the backend profile so returning users
    do not type their details again.
    """
    if draft.view().basic or not profile:
        return
    fields = from_backend_profile(profile)
    known = {
        'prefix', 'full_name', 'gender', 'email', 'phone', 'affiliation',
        'designation', 'medical_council_registration', 'medical_council_state',
        'address', 'country', 'state', 'city', 'pincode',
    }
    basic = {k: v for k, v in fields.items() if k in known and v not in (None, '')}
    draft.load_existing(basic, None, None, None)


def summary_rows(view, store):
    """(label, display value) pairs of the category and dynamic answers."""
    category = store.category(view.category_id)
    additional_fields, dynamic_fields = store.fields_for(category)

    rows = []
    for bucket, descriptors in ((ADDITIONAL, additional_fields), (DYNAMIC, dynamic_fields)):
        answers = view.answers(bucket)
        for descriptor in descriptors:
            if descriptor.is_file:
                ref = view.file_ref(bucket, descriptor.id)
                value = ref.name if ref else ''
            else:
                value = answers.get(descriptor.id)
                if isinstance(value, (list, tuple)):
                    value = ', '.join(value)
            rows.append((descriptor.label, value or '-'))
    return rows


# =========================================================
# 2. AMOUNTS
# =========================================================


def registration_amount(category, accompanying_count=0):
    """Category price plus the per-person accompanying price."""
    if category is None:
        return Decimal('0')
    return category.amount + category.accompany_amount * accompanying_count


# =========================================================
# 3. SUBMISSION
# =========================================================


class SubmissionResult:
    def __init__(self, registration_id, event_id, amount, category_name, prefill):
        self.registration_id = registration_id
        self.event_id = event_id
        self.amount = amount
        self.category_name = category_name
        self.prefill = prefill

    def to_checkout(self):
        return {
            'event_id': self.event_id,
            'amount': str(self.amount),
            'category_name': self.category_name,
            'prefill': self.prefill,
        }


def submit_registration(client, draft):
    """
    Gate -> normalise -> multipart POST -> reset the draft.
    MissingRequiredFile is raised before any network call.
    """
    view = draft.view()
    store = draft.descriptors()
    basic = view.basic

    # 1. Completeness
    if store is None or not view.category_id or not all(
            basic.get(k) for k in ('full_name', 'email', 'phone')):
        raise ValidationError(INCOMPLETE_MESSAGE)

    category = store.category(view.category_id)
    if category is None:
        raise ValidationError(INCOMPLETE_MESSAGE)

    # 2. Required files (hard gate)
    check_required_files(view, store)

    # 3. Normalise and send
    payload = normalize_draft(view, store, draft.open_file)
    try:
        data, files = payload.to_multipart()
        result = client.submit_registration(view.event_id, data, files)
    except BackendError as e:
        if 'already registered' in (e.message or ''):
            raise BackendError(ALREADY_REGISTERED_MESSAGE, e.status_code, e.payload) from e
        raise
    finally:
        payload.close()

    registration_id = (result or {}).get('_id')
    if not registration_id:
        raise BackendError("No registration ID received")

    submission = SubmissionResult(
        registration_id=registration_id,
        event_id=view.event_id,
        amount=registration_amount(category, len(view.accompanying_persons)),
        category_name=category.name,
        prefill={
            'name': basic.get('full_name') or '',
            'email': basic.get('email') or '',
            'contact': basic.get('phone') or '',
        },
    )

    # 4. Release the draft and its pending uploads
    draft.reset()
    logger.info(f"Event {view.event_id}: registration {registration_id} submitted")
    return submission
