"""
Shared pytest fixtures for the portal tests.

Backend calls never leave the process: FakeBackendClient answers from
canned data and records every call it receives.
"""
import os

os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret-key")

import pytest
from django.core.files.storage import FileSystemStorage
from django.core.files.uploadedfile import SimpleUploadedFile

from core.api_client import BackendError
from registrations.descriptors import FieldDescriptorStore
from registrations.store import RegistrationDraft


# ── Mock helpers ──────────────────────────────────────────────────────────────

class FakeSession(dict):
    """Dict-backed stand-in for request.session."""

    modified = False


class FakeBackendClient:
    """
    Canned backend. `errors` maps a method name to the BackendError it
    should raise instead of answering.
    """

    def __init__(self, slabs=None, form_fields=None, meals=None, registration=None,
                 order=None, errors=None, events=None, terms=None, profile=None,
                 registrations=None, abstracts=None):
        self.slabs = slabs or []
        self.form_fields = form_fields or []
        self.meals = meals or []
        self.registration = registration
        self.order = order
        self.errors = errors or {}
        self.events = events or []
        self.terms = terms or []
        self.profile = profile or {}
        self.registrations = registrations
        self.abstracts = abstracts or []
        self.calls = []

    def _answer(self, name, value, *args):
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]
        return value

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    def list_events(self):
        return self._answer('list_events', self.events)

    def get_event(self, event_id):
        for event in self.events:
            if event.get('_id') == event_id:
                return self._answer('get_event', event, event_id)
        return self._answer('get_event', {'_id': event_id, 'eventName': 'Cardiology Summit'}, event_id)

    def get_profile(self):
        return self._answer('get_profile', self.profile)

    def get_registration_settings(self, event_id):
        return self._answer('get_registration_settings', {}, event_id)

    def list_terms(self, event_id):
        return self._answer('list_terms', self.terms, event_id)

    def list_slabs(self, event_id):
        return self._answer('list_slabs', self.slabs, event_id)

    def list_form_fields(self, event_id):
        return self._answer('list_form_fields', self.form_fields, event_id)

    def list_meal_preferences(self, event_id):
        return self._answer('list_meal_preferences', self.meals, event_id)

    def submit_registration(self, event_id, data, files):
        return self._answer('submit_registration', self.registration or {'_id': 'reg-1'},
                            event_id, data, files)

    def create_order(self, event_id, registration_id, amount):
        return self._answer('create_order', self.order, event_id, registration_id, amount)

    def verify_payment(self, order_id, provider_payment_id, signature, payment_id):
        return self._answer('verify_payment', {}, order_id, provider_payment_id, signature, payment_id)

    def list_my_registrations(self):
        if self.registrations is not None:
            return self._answer('list_my_registrations', self.registrations)
        return self._answer('list_my_registrations', [self.registration] if self.registration else [])

    def list_my_abstracts(self, event_id):
        return self._answer('list_my_abstracts', self.abstracts, event_id)

    def get_abstract_settings(self, event_id):
        return self._answer('get_abstract_settings', {}, event_id)

    def list_abstract_categories(self, event_id):
        return self._answer('list_abstract_categories', [], event_id)

    def submit_abstract(self, event_id, data, files):
        return self._answer('submit_abstract', {'_id': 'abs-1'}, event_id, data, files)


# ── Sample backend payloads ───────────────────────────────────────────────────

def make_slab(slab_id='slab-1', name='Delegate', amount=1500, fields=None, accompany_amount=500):
    return {
        '_id': slab_id,
        'slabName': name,
        'amount': amount,
        'AccompanyAmount': accompany_amount,
        'startDate': '2025-01-01T00:00:00.000Z',
        'endDate': '2025-11-30T00:00:00.000Z',
        'needAdditionalInfo': bool(fields),
        'additionalFields': fields or [],
    }


def make_dynamic_field(field_id, field_type, label, required=False, **extra):
    data = {'id': field_id, 'type': field_type, 'label': label, 'required': required}
    data.update(extra)
    return data


BASIC_DETAILS = {
    'prefix': 'Dr.',
    'full_name': 'Asha Rao',
    'gender': 'Female',
    'email': 'asha@example.com',
    'phone': '9876543210',
    'affiliation': 'City Hospital',
    'designation': 'Consultant',
    'medical_council_registration': 'KMC-1234',
    'medical_council_state': 'Karnataka',
    'address': '12 MG Road',
    'country': 'India',
    'state': 'Karnataka',
    'city': 'Bengaluru',
    'pincode': '560001',
    'meal_preference': 'Vegetarian',
    'accepted_terms': True,
}


def basic_post_data(category_id, **extra):
    data = {k: ('on' if v is True else v) for k, v in BASIC_DETAILS.items()}
    data['category_id'] = category_id
    data.update(extra)
    return data


def signup_post_data(**extra):
    data = {
        'prefix': 'Dr.',
        'full_name': 'Asha Rao',
        'affiliation': 'City Hospital',
        'designation': 'Consultant',
        'email': 'asha@example.com',
        'phone': '9876543210',
        'mci_registered': 'no',
        'department': 'Cardiology',
        'gender': 'Female',
        'address': '12 MG Road',
        'country': 'India',
        'state': 'Karnataka',
        'city': 'Bengaluru',
        'pincode': '560001',
        'password': 'Secret#123',
        'confirm_password': 'Secret#123',
        'term_and_condition': 'on',
    }
    data.update(extra)
    return data


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def storage(tmp_path):
    return FileSystemStorage(location=str(tmp_path))


@pytest.fixture
def make_draft(session, storage):
    def _make(event_id='evt-1', slabs=None, form_fields=None):
        draft = RegistrationDraft(session, event_id, storage=storage)
        draft.set_descriptors(FieldDescriptorStore.from_api(event_id, slabs or [], form_fields or []))
        return draft
    return _make


@pytest.fixture
def pdf_upload():
    def _make(name='id-proof.pdf', content=b'%PDF-1.4 test'):
        return SimpleUploadedFile(name, content, content_type='application/pdf')
    return _make


@pytest.fixture
def backend_error():
    def _make(message, status_code=400):
        return BackendError(message, status_code=status_code)
    return _make
