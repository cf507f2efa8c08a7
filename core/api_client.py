import json
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

SESSION_TOKEN_KEY = 'backend_access_token'
SESSION_PROFILE_KEY = 'backend_profile'

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
NETWORK_ERROR_MESSAGE = "Network error occurred"


class BackendError(Exception):
    """
    Raised for every failed call to the conference backend.
    `message` is the human readable text taken from the response body when
    the backend sent one, otherwise the generic message of the call.
    """

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    def __str__(self):
        return self.message


class BackendUnavailable(BackendError):
    """Connection refused, DNS failure, timeout..."""


# ========================================================
# FIELD NAME MAPPING (Portal <-> Backend)
# ========================================================

# Portal name -> backend name. Anything not listed is sent camelCased.
PROFILE_FIELD_MAP = {
    'full_name': 'name',
    'phone': 'mobile',
    'category_id': 'registrationSlabId',
}

# Backend names read as a portal field but never sent
BACKEND_ALIASES = {
    'fullname': 'full_name',
}


def _camel(name):
    head, *rest = name.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def _snake(name):
    out = []
    for char in name:
        if char.isupper():
            out.append('_')
            out.append(char.lower())
        else:
            out.append(char)
    return ''.join(out).lstrip('_')


def to_backend_profile(fields):
    """
    The only place where portal field names are translated to the names the
    backend expects (full_name -> name, phone -> mobile, snake -> camel).
    None becomes an empty string so every scalar is a valid multipart part.
    """
    mapped = {}
    for key, value in fields.items():
        backend_key = PROFILE_FIELD_MAP.get(key, _camel(key))
        mapped[backend_key] = '' if value is None else value
    return mapped


def from_backend_profile(data):
    """
    Reverse of to_backend_profile, used to prefill forms and to read
    profiles and registrations. An empty value never hides a filled alias.
    """
    reverse_map = {v: k for k, v in PROFILE_FIELD_MAP.items()}
    reverse_map.update(BACKEND_ALIASES)
    profile = {}
    for key, value in (data or {}).items():
        if key.startswith('_'):
            continue
        name = reverse_map.get(key, _snake(key))
        if value in (None, '') and profile.get(name) not in (None, ''):
            continue
        profile[name] = value
    return profile


# ========================================================
# CLIENT
# ========================================================


class BackendClient:
    """
    Thin wrapper around the conference REST API.
    Every endpoint answers with {success, data, message}; the methods below
    return `data` and raise BackendError otherwise.
    """

    def __init__(self, base_url=None, token=None, timeout=None, session=None):
        self.base_url = (base_url or settings.BACKEND_API_BASE_URL).rstrip('/')
        self.token = token
        self.timeout = timeout or settings.BACKEND_API_TIMEOUT
        self.session = session or requests.Session()

    @classmethod
    def for_request(cls, request):
        return cls(token=request.session.get(SESSION_TOKEN_KEY))

    # --- plumbing ---

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _request(self, method, path, error_message=GENERIC_ERROR_MESSAGE, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Backend unreachable on {method} {path}: {e}")
            raise BackendUnavailable(NETWORK_ERROR_MESSAGE) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not isinstance(body, dict):
            body = {'data': body}

        if not response.ok or body.get('success') is False:
            message = body.get('message') or error_message
            logger.warning(
                f"Backend {method} {path} failed ({response.status_code}): {message}")
            raise BackendError(message, status_code=response.status_code, payload=body)

        # Some endpoints (profile) answer with the bare object
        return body['data'] if 'data' in body else body

    def _get(self, path, error_message=GENERIC_ERROR_MESSAGE, **kwargs):
        return self._request('GET', path, error_message, **kwargs)

    def _post(self, path, error_message=GENERIC_ERROR_MESSAGE, **kwargs):
        return self._request('POST', path, error_message, **kwargs)

    # --- auth ---

    def login(self, email, password):
        """-> (access token, user dict)"""
        data = self._post('/api/users/login', "Invalid email or password",
                          json={'email': email, 'password': password}) or {}
        token = data.get('accessToken') or data.get('token')
        if not token:
            raise BackendError("Invalid email or password", payload=data)
        return token, data.get('user') or {}

    def register(self, fields):
        """Creates the account; `fields` use portal names (full_name, phone...)."""
        return self._post('/api/users/register', "Registration failed. Please try again.",
                          json=to_backend_profile(fields))

    def logout(self):
        return self._post('/api/users/logout', "Logout failed")

    def get_profile(self):
        return self._get('/api/users/profile', "Failed to load profile")

    # --- events ---

    def list_events(self):
        return self._get('/api/events', "Failed to load events") or []

    def get_event(self, event_id):
        return self._get(f'/api/events/{event_id}', "Event not found")

    def get_registration_settings(self, event_id):
        data = self._get(f'/api/events/{event_id}/registration-settings',
                         "Failed to load registration settings")
        if isinstance(data, list):
            return data[0] if data else None
        return data

    # --- registration descriptors ---

    def list_slabs(self, event_id):
        return self._get(f'/api/events/{event_id}/slabs/active',
                         "Failed to load registration options") or []

    def list_form_fields(self, event_id):
        return self._get(f'/api/events/{event_id}/form-fields/active',
                         "Failed to load registration form") or []

    def list_meal_preferences(self, event_id):
        return self._get(f'/api/events/{event_id}/meal-preferences/active',
                         "Failed to load meal preferences") or []

    def list_terms(self, event_id):
        try:
            return self._get(f'/api/events/{event_id}/terms-and-conditions') or []
        except BackendError as e:
            # No terms configured for this event
            if e.status_code == 404:
                return []
            raise

    # --- registrations ---

    def submit_registration(self, event_id, data, files):
        return self._post(f'/api/events/{event_id}/register', "Registration failed",
                          data=data, files=files)

    def list_my_registrations(self):
        return self._get('/api/my/registrations', "Failed to load registrations") or []

    def get_registration(self, registration_id):
        return self._get(f'/api/registrations/{registration_id}', "Registration not found")

    # --- payments ---

    def create_order(self, event_id, registration_id, amount):
        return self._post(f'/api/payments/create-order/{event_id}',
                          "Failed to create payment order",
                          json={'eventRegistrationId': registration_id, 'amount': amount})

    def verify_payment(self, order_id, provider_payment_id, signature, payment_id):
        return self._post('/api/payments/verify', "Payment verification failed",
                          json={
                              'razorpayOrderId': order_id,
                              'razorpayPaymentId': provider_payment_id,
                              'razorpaySignature': signature,
                              'paymentId': payment_id,
                          })

    # --- abstracts ---

    def list_my_abstracts(self, event_id):
        return self._get(f'/api/events/{event_id}/abstracts/my-abstracts',
                         "Failed to fetch abstracts") or []

    def get_abstract_settings(self, event_id):
        return self._get(f'/api/events/{event_id}/abstract-settings',
                         "Failed to fetch abstract settings")

    def list_abstract_categories(self, event_id):
        return self._get(f'/api/events/{event_id}/abstract-categories/active',
                         "Failed to fetch abstract categories") or []

    def submit_abstract(self, event_id, data, files):
        return self._post(f'/api/events/{event_id}/abstract-submit',
                          "Failed to submit abstract", data=data, files=files)


def dumps_compact(value):
    """JSON encoding used for every JSON-string multipart part."""
    return json.dumps(value, separators=(',', ':'), default=str)
