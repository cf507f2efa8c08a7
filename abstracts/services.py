import logging

from django.core.exceptions import ValidationError
from django.utils import timezone

from core.api_client import BackendError, dumps_compact
from events.dates import parse_iso

logger = logging.getLogger(__name__)

REGISTRATION_REQUIRED_MESSAGE = "Registration is required for abstract submission"


def _event_ref(value):
    if isinstance(value, dict):
        return str(value.get('_id') or '')
    return str(value or '')


# =========================================================
# 1. RULES FROM THE EVENT SETTINGS
# =========================================================


def submission_deadline(abstract_settings):
    return parse_iso((abstract_settings or {}).get('abstractSubmissionEndDate'))


def check_submission_open(abstract_settings, today=None):
    deadline = submission_deadline(abstract_settings)
    today = today or timezone.localdate()
    if deadline and today > deadline:
        raise ValidationError("Abstract submission deadline has passed")


def check_registration(client, event_id, abstract_settings):
    """Some events only take abstracts from registered attendees."""
    if not (abstract_settings or {}).get('regRequiredForAbstractSubmission'):
        return
    registrations = client.list_my_registrations()
    if not any(_event_ref(r.get('eventId')) == str(event_id) for r in registrations):
        raise ValidationError(REGISTRATION_REQUIRED_MESSAGE)


# =========================================================
# 2. SUBMISSION
# =========================================================


def build_abstract_payload(form):
    """Validated AbstractForm -> (data, files) in the backend multipart shape."""
    cleaned = form.cleaned_data

    data = {
        'presenterName': cleaned['presenter_name'],
        'title': cleaned['title'],
        'abstract': cleaned['abstract'],
        'categories': dumps_compact(form.selected_categories()),
    }
    if cleaned.get('presentation_type'):
        data['type'] = cleaned['presentation_type']
    if cleaned.get('upload_video_url'):
        data['uploadVideoUrl'] = cleaned['upload_video_url']

    for index, author in enumerate(cleaned.get('co_authors') or []):
        data[f'coAuthor[{index}]'] = author

    files = {}
    upload = cleaned.get('upload_file')
    if upload:
        files['uploadFile'] = (upload.name, upload, getattr(upload, 'content_type', None)
                               or 'application/octet-stream')

    return data, files


def submit_abstract(client, event_id, form, abstract_settings=None):
    check_submission_open(abstract_settings)
    check_registration(client, event_id, abstract_settings)

    data, files = build_abstract_payload(form)
    result = client.submit_abstract(event_id, data, files)
    logger.info(f"Event {event_id}: abstract '{data['title']}' submitted")
    return result


def load_abstract_page(client, event_id):
    """-> (abstracts, settings, categories); settings failures are not fatal."""
    abstracts = client.list_my_abstracts(event_id)
    try:
        abstract_settings = client.get_abstract_settings(event_id) or {}
    except BackendError as e:
        logger.warning(f"Event {event_id}: no abstract settings ({e})")
        abstract_settings = {}
    try:
        categories = client.list_abstract_categories(event_id)
    except BackendError as e:
        logger.warning(f"Event {event_id}: no abstract categories ({e})")
        categories = []
    return abstracts, abstract_settings, categories
