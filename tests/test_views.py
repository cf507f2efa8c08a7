"""
Integration tests: access control, page rendering, signup, the payment
APIs and the submit redirect, through Django's test client with a canned
backend.
"""
import pytest
from django.core.cache import cache
from django.urls import reverse

from core.api_client import SESSION_PROFILE_KEY, SESSION_TOKEN_KEY, BackendClient, BackendError
from payments.models import PaymentAttempt
from payments.services.checkout import OWNED_ATTEMPTS_KEY
from payments.services.orchestrator import start_checkout
from registrations.descriptors import FieldDescriptorStore
from registrations.services import checkout_session_key, form_class_for
from registrations.store import RegistrationDraft

from conftest import FakeBackendClient, basic_post_data, make_slab, signup_post_data


ORDER = {'orderId': 'order_abc', 'razorpayKeyId': 'rzp_test_key', 'paymentId': 'pay-backend-1'}


@pytest.fixture
def backend(monkeypatch):
    """The canned client every request gets as request.backend."""
    fake = FakeBackendClient(order=ORDER)
    monkeypatch.setattr(BackendClient, 'for_request', classmethod(lambda cls, request: fake))
    cache.clear()
    yield fake
    cache.clear()


@pytest.fixture
def logged_in(client):
    session = client.session
    session[SESSION_TOKEN_KEY] = 'tok-1'
    session.save()
    return client


def _own(client, attempt):
    session = client.session
    session[OWNED_ATTEMPTS_KEY] = [attempt.id]
    session.save()


@pytest.mark.django_db
class TestAccessControl:

    def test_pages_redirect_to_login(self, client):
        response = client.get(reverse('event_list'))

        assert response.status_code == 302
        assert response['Location'].startswith(reverse('login'))

    def test_apis_answer_401(self, client):
        response = client.post(reverse('api_payment_open', kwargs={'attempt_id': 1}))

        assert response.status_code == 401
        assert response.json()['status'] == 'error'

    def test_logged_in_user_skips_login_page(self, logged_in, backend):
        response = logged_in.get(reverse('login'))
        assert response.status_code == 302
        assert response['Location'] == reverse('event_list')


@pytest.mark.django_db
class TestPaymentApis:

    def test_foreign_attempt_is_hidden(self, logged_in, backend):
        attempt = start_checkout('reg-1', 'evt-1', '1500')

        response = logged_in.post(reverse('api_payment_gateway_loaded', kwargs={'attempt_id': attempt.id}))

        assert response.status_code == 404
        assert backend.called('create_order') == []

    def test_gateway_loaded_creates_the_order(self, logged_in, backend):
        attempt = start_checkout('reg-1', 'evt-1', '1500')
        _own(logged_in, attempt)

        response = logged_in.post(reverse('api_payment_gateway_loaded', kwargs={'attempt_id': attempt.id}))

        assert response.status_code == 200
        body = response.json()
        assert body['payment_status'] == PaymentAttempt.READY
        assert body['order']['id'] == 'order_abc'

    def test_full_payment_round(self, logged_in, backend):
        attempt = start_checkout('reg-1', 'evt-1', '1500')
        _own(logged_in, attempt)
        logged_in.post(reverse('api_payment_gateway_loaded', kwargs={'attempt_id': attempt.id}))

        opened = logged_in.post(reverse('api_payment_open', kwargs={'attempt_id': attempt.id})).json()
        assert opened['options']['order_id'] == 'order_abc'

        response = logged_in.post(reverse('api_payment_verify', kwargs={'attempt_id': attempt.id}), {
            'razorpay_order_id': 'order_abc',
            'razorpay_payment_id': 'pay_xyz',
            'razorpay_signature': 'sig',
        })

        body = response.json()
        assert body['status'] == 'success'
        assert body['redirect_url'].startswith(reverse('payment_success'))
        assert 'paymentId=pay_xyz' in body['redirect_url']

    def test_verify_before_opening_is_a_conflict(self, logged_in, backend):
        attempt = start_checkout('reg-1', 'evt-1', '1500')
        _own(logged_in, attempt)

        response = logged_in.post(reverse('api_payment_verify', kwargs={'attempt_id': attempt.id}), {
            'razorpay_order_id': 'order_abc', 'razorpay_payment_id': 'pay_xyz', 'razorpay_signature': 'sig'})

        assert response.status_code == 409


@pytest.mark.django_db
class TestConfirmStep:

    def test_missing_file_sends_user_back_to_the_field(self, logged_in, backend):
        slabs = [make_slab('slab-a', 'Delegate', 1500, fields=[
            {'id': 1, 'type': 'textbox', 'label': 'Badge Name'},
            {'id': 2, 'type': 'upload', 'label': 'ID Proof', 'extension': 'pdf'},
        ])]
        session = logged_in.session
        draft = RegistrationDraft(session, 'evt-1')
        draft.set_descriptors(FieldDescriptorStore.from_api('evt-1', slabs, []))
        form_class = form_class_for(draft.descriptors(), 'slab-a')
        form = form_class(data=basic_post_data('slab-a', additional_1='Asha'))
        assert form.is_valid(), form.errors
        draft.save_step(form.cleaned_data, form_class)
        session.save()

        response = logged_in.post(reverse('registration_confirm', kwargs={'event_id': 'evt-1'}))

        assert response.status_code == 302
        assert response['Location'] == reverse(
            'registration_details', kwargs={'event_id': 'evt-1'}) + '?missing=additional_2'
        assert backend.called('submit_registration') == []


SINGLE_DAY_EVENT = {'_id': 'e1', 'eventName': 'Cardiology Summit', 'shortName': 'CARDIO25',
                    'startDate': '12/12/2025', 'dynamicStatus': 'Live'}


@pytest.mark.django_db
class TestPages:
    """Pages render backend payloads that leave optional keys out."""

    def test_event_list_without_end_date(self, logged_in, backend):
        backend.events = [SINGLE_DAY_EVENT]

        response = logged_in.get(reverse('event_list'))

        assert response.status_code == 200
        assert '12 Dec 2025' in response.content.decode()

    def test_event_detail_without_end_date(self, logged_in, backend):
        backend.events = [SINGLE_DAY_EVENT]

        response = logged_in.get(reverse('event_detail', kwargs={'event_id': 'e1'}))

        assert response.status_code == 200
        assert '12 Dec 2025' in response.content.decode()

    def test_dashboard_reads_fullname(self, logged_in, backend):
        session = logged_in.session
        session[SESSION_PROFILE_KEY] = {'fullname': 'Asha Rao'}
        session.save()
        backend.events = [SINGLE_DAY_EVENT]

        response = logged_in.get(reverse('dashboard'))

        content = response.content.decode()
        assert response.status_code == 200
        assert 'Welcome, Asha Rao' in content
        assert '12 Dec 2025' in content

    def test_terms_with_content_only(self, logged_in, backend):
        backend.slabs = [make_slab('slab-a', 'Delegate', 1500)]
        backend.terms = [{'_id': 't1', 'content': 'No refunds after 1 Nov'},
                         {'_id': 't2', 'description': 'Carry a photo ID'}]

        response = logged_in.get(reverse('registration_details', kwargs={'event_id': 'evt-1'}))

        content = response.content.decode()
        assert response.status_code == 200
        assert 'No refunds after 1 Nov' in content
        assert 'Carry a photo ID' in content

    def test_profile_with_backend_names(self, logged_in, backend):
        backend.profile = {'_id': 'u1', 'name': 'Asha Rao', 'email': 'asha@example.com',
                           'mobile': '9876543210'}

        response = logged_in.get(reverse('profile'))

        content = response.content.decode()
        assert response.status_code == 200
        assert 'Asha Rao' in content
        assert '9876543210' in content

    def test_my_registrations_with_bare_ids(self, logged_in, backend):
        backend.registrations = [{'_id': 'reg-9', 'regNum': 'CARDIO25-0009', 'eventId': 'e1',
                                  'isPaid': False}]

        response = logged_in.get(reverse('my_registrations'))

        content = response.content.decode()
        assert response.status_code == 200
        assert 'CARDIO25-0009' in content
        assert reverse('payment_checkout', kwargs={'registration_id': 'reg-9'}) in content

    def test_my_abstracts_without_number(self, logged_in, backend):
        backend.abstracts = [{'_id': 'a1', 'title': 'Outcomes of early PCI', 'status': 'Pending',
                              'coAuthor': ['R. Kumar']}]

        response = logged_in.get(reverse('my_abstracts', kwargs={'event_id': 'evt-1'}))

        assert response.status_code == 200
        assert 'Outcomes of early PCI' in response.content.decode()

    def test_checkout_reports_network_errors(self, logged_in, backend):
        session = logged_in.session
        session[checkout_session_key('reg-1')] = {
            'event_id': 'evt-1', 'amount': '1500', 'category_name': 'Delegate',
            'prefill': {'name': 'Asha Rao', 'email': '', 'contact': ''}, 'is_paid': False}
        session.save()

        response = logged_in.get(reverse('payment_checkout', kwargs={'registration_id': 'reg-1'}))

        assert response.status_code == 200
        # Both the order creation and the widget opening surface a failed request
        assert response.content.decode().count("fail('Network error occurred')") == 2


@pytest.mark.django_db
class TestSignup:

    def test_account_is_created(self, client, monkeypatch):
        sent = []
        monkeypatch.setattr(BackendClient, 'register', lambda self, fields: sent.append(fields) or {})

        response = client.post(reverse('signup'), signup_post_data())

        assert response.status_code == 302
        assert response['Location'] == reverse('login')
        assert sent[0]['full_name'] == 'Asha Rao'
        assert sent[0]['phone'] == '9876543210'
        assert 'confirm_password' in sent[0]

    def test_council_details_dropped_when_not_registered(self, client, monkeypatch):
        sent = []
        monkeypatch.setattr(BackendClient, 'register', lambda self, fields: sent.append(fields) or {})

        client.post(reverse('signup'), signup_post_data(mci_number='KMC-1', mci_state='Karnataka'))

        assert sent[0]['mci_number'] == ''
        assert sent[0]['mci_state'] == ''

    def test_existing_email(self, client, monkeypatch):
        def register(self, fields):
            raise BackendError("User already exists", status_code=409)
        monkeypatch.setattr(BackendClient, 'register', register)

        response = client.post(reverse('signup'), signup_post_data())

        content = response.content.decode()
        assert response.status_code == 200
        assert 'This email is already registered' in content
        assert 'Email already exists. Please use a different email.' in content

    def test_invalid_form_never_reaches_backend(self, client, monkeypatch):
        sent = []
        monkeypatch.setattr(BackendClient, 'register', lambda self, fields: sent.append(fields) or {})

        response = client.post(reverse('signup'), signup_post_data(confirm_password='Other#123'))

        assert response.status_code == 200
        assert 'Passwords do not match' in response.content.decode()
        assert sent == []

    def test_logged_in_user_skips_signup_page(self, logged_in, backend):
        response = logged_in.get(reverse('signup'))

        assert response.status_code == 302
        assert response['Location'] == reverse('event_list')
