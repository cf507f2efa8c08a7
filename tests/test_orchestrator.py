"""
Unit tests: the checkout state machine (payments.services.orchestrator).
"""
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest
from django.core.exceptions import ValidationError
from django.urls import reverse

from core.api_client import BackendError, BackendUnavailable
from payments.models import PaymentAttempt
from payments.services.orchestrator import (INVALID_CALLBACK_ERROR, InvalidTransition, create_order,
                                            dismiss_widget, gateway_failed, gateway_loaded,
                                            open_widget, start_checkout, to_minor_units, verify)

from conftest import FakeBackendClient


ORDER = {'orderId': 'order_abc', 'razorpayKeyId': 'rzp_test_key', 'paymentId': 'pay-backend-1',
         'amount': 1500, 'currency': 'INR'}


def _query(url):
    parsed = urlparse(url)
    return parsed.path, {k: v[0] for k, v in parse_qs(parsed.query).items()}


def _ready_attempt(client):
    attempt = start_checkout('reg-1', 'evt-1', '1500', prefill={'name': 'Asha', 'email': 'a@x.com'})
    gateway_loaded(attempt.id)
    return create_order(attempt.id, client)


@pytest.mark.django_db
class TestCheckoutLifecycle:

    def test_start_checkout(self):
        attempt = start_checkout('reg-1', 'evt-1', '1500.50')
        assert attempt.status == PaymentAttempt.LOADING_GATEWAY
        assert attempt.amount == Decimal('1500.50')
        assert attempt.currency == 'INR'

    def test_non_positive_amount_is_refused(self):
        with pytest.raises(ValidationError):
            start_checkout('reg-1', 'evt-1', '0')

    def test_order_makes_attempt_ready(self):
        client = FakeBackendClient(order=ORDER)
        attempt = _ready_attempt(client)

        assert attempt.status == PaymentAttempt.READY
        assert attempt.order_id == 'order_abc'
        assert attempt.key_id == 'rzp_test_key'
        assert client.called('create_order') == [('evt-1', 'reg-1', 1500.0)]

    def test_order_failure_blocks_payment(self, backend_error):
        client = FakeBackendClient(errors={'create_order': backend_error("Event is sold out")})
        attempt = _ready_attempt(client)

        assert attempt.status == PaymentAttempt.FAILED
        assert attempt.failure_reason == "Event is sold out"
        with pytest.raises(InvalidTransition):
            open_widget(attempt.id)

    def test_order_without_id_fails(self):
        attempt = _ready_attempt(FakeBackendClient(order={'amount': 1500}))
        assert attempt.status == PaymentAttempt.FAILED

    def test_gateway_script_failure(self):
        attempt = start_checkout('reg-1', 'evt-1', '1500')
        attempt = gateway_failed(attempt.id)

        assert attempt.status == PaymentAttempt.FAILED
        assert attempt.failure_reason == "Failed to load payment gateway. Please refresh the page."

    def test_order_is_created_once(self):
        client = FakeBackendClient(order=ORDER)
        attempt = _ready_attempt(client)

        with pytest.raises(InvalidTransition):
            create_order(attempt.id, client)
        assert len(client.called('create_order')) == 1

    def test_widget_options(self):
        attempt = _ready_attempt(FakeBackendClient(order=ORDER))
        options = open_widget(attempt.id)

        assert options['order_id'] == 'order_abc'
        assert options['amount'] == 150000
        assert options['prefill']['name'] == 'Asha'
        assert PaymentAttempt.objects.get(id=attempt.id).status == PaymentAttempt.OPENING_WIDGET

    def test_dismiss_returns_to_ready(self):
        client = FakeBackendClient(order=ORDER)
        attempt = _ready_attempt(client)
        open_widget(attempt.id)

        attempt = dismiss_widget(attempt.id)

        assert attempt.status == PaymentAttempt.READY
        assert client.called('verify_payment') == []
        # The user can try again
        open_widget(attempt.id)

    def test_invalid_transition(self):
        attempt = start_checkout('reg-1', 'evt-1', '1500')
        with pytest.raises(InvalidTransition) as excinfo:
            dismiss_widget(attempt.id)
        assert excinfo.value.current == PaymentAttempt.LOADING_GATEWAY
        assert excinfo.value.target == PaymentAttempt.READY


@pytest.mark.django_db
class TestVerification:

    def _opened(self, client):
        attempt = _ready_attempt(client)
        open_widget(attempt.id)
        return attempt

    def test_success_redirect(self):
        client = FakeBackendClient(order=ORDER)
        attempt = self._opened(client)

        outcome = verify(attempt.id, client, 'order_abc', 'pay_xyz', 'sig')

        assert outcome.succeeded
        path, query = _query(outcome.redirect_url)
        assert path == reverse('payment_success')
        assert query == {'registrationId': 'reg-1', 'paymentId': 'pay_xyz'}
        assert client.called('verify_payment') == [('order_abc', 'pay_xyz', 'sig', 'pay-backend-1')]
        assert PaymentAttempt.objects.get(id=attempt.id).status == PaymentAttempt.SUCCEEDED

    def test_backend_refusal_goes_to_failed_page(self, backend_error):
        client = FakeBackendClient(order=ORDER, errors={
            'verify_payment': backend_error("Invalid payment signature", status_code=400)})
        attempt = self._opened(client)

        outcome = verify(attempt.id, client, 'order_abc', 'pay_xyz', 'sig')

        path, query = _query(outcome.redirect_url)
        assert path == reverse('payment_failed')
        assert query == {'registrationId': 'reg-1', 'message': 'Invalid payment signature'}
        assert PaymentAttempt.objects.get(id=attempt.id).failure_reason == "Invalid payment signature"

    def test_network_failure_goes_to_error_page(self):
        client = FakeBackendClient(order=ORDER, errors={
            'verify_payment': BackendUnavailable("Network error occurred")})
        attempt = self._opened(client)

        outcome = verify(attempt.id, client, 'order_abc', 'pay_xyz', 'sig')

        path, query = _query(outcome.redirect_url)
        assert path == reverse('payment_error')
        assert query == {'registrationId': 'reg-1', 'message': 'Network error occurred'}
        assert outcome.status == PaymentAttempt.FAILED

    def test_unsuccessful_answer_keeps_payment_id(self):
        client = FakeBackendClient(order=ORDER, errors={
            'verify_payment': BackendError("Payment verification failed", status_code=200)})
        attempt = self._opened(client)

        outcome = verify(attempt.id, client, 'order_abc', 'pay_xyz', 'sig')

        _, query = _query(outcome.redirect_url)
        assert query == {'registrationId': 'reg-1', 'paymentId': 'pay_xyz'}

    def test_incomplete_callback(self):
        client = FakeBackendClient(order=ORDER)
        attempt = self._opened(client)

        outcome = verify(attempt.id, client, 'order_abc', 'pay_xyz', '')

        assert outcome.message == INVALID_CALLBACK_ERROR
        assert client.called('verify_payment') == []

    def test_verify_needs_an_open_widget(self):
        client = FakeBackendClient(order=ORDER)
        attempt = _ready_attempt(client)

        with pytest.raises(InvalidTransition):
            verify(attempt.id, client, 'order_abc', 'pay_xyz', 'sig')


class TestMinorUnits:

    @pytest.mark.parametrize("amount,expected", [
        ('1500', 150000),
        ('1500.50', 150050),
        (Decimal('99.995'), 10000),
        (2000, 200000),
    ])
    def test_to_minor_units(self, amount, expected):
        assert to_minor_units(amount) == expected
