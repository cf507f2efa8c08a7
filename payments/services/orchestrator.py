# payments/services/orchestrator.py
#
# The checkout state machine. One PaymentAttempt per checkout visit:
#
#   loading-gateway -> creating-order -> ready -> opening-widget -> verifying
#                                          ^            |              |
#                                          +- dismiss --+              +-> succeeded | failed
#
# loading-gateway and creating-order may also fall to `failed`.
# Every transition is taken under a row lock; nothing is retried here.

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from urllib.parse import urlencode

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.urls import reverse

from core.api_client import BackendError, BackendUnavailable
from ..models import PaymentAttempt

logger = logging.getLogger(__name__)

GATEWAY_LOAD_ERROR = "Failed to load payment gateway. Please refresh the page."
INVALID_ORDER_ERROR = "Invalid order response from the server"
INVALID_CALLBACK_ERROR = "Incomplete response from the payment gateway"


class InvalidTransition(ValidationError):
    def __init__(self, attempt, target):
        self.attempt_id = attempt.id
        self.current = attempt.status
        self.target = target
        super().__init__(
            f"Cannot move payment {attempt.id} from '{attempt.status}' to '{target}'.",
            code='invalid_transition',
        )


class VerificationOutcome:
    """Where the browser goes once verification is over."""

    def __init__(self, status, redirect_url, message=''):
        self.status = status
        self.redirect_url = redirect_url
        self.message = message

    @property
    def succeeded(self):
        return self.status == PaymentAttempt.SUCCEEDED


def to_minor_units(amount):
    """Decimal('1500.50') -> 150050"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


# =========================================================
# 1. INTERNAL HELPERS
# =========================================================


def _lock(attempt_id):
    try:
        return PaymentAttempt.objects.select_for_update().get(id=attempt_id)
    except PaymentAttempt.DoesNotExist:
        raise ValidationError("Payment not found.")


def _move(attempt_id, allowed_from, target, **fields):
    """Guarded transition: lock, check the current state, write, log."""
    with transaction.atomic():
        attempt = _lock(attempt_id)

        if attempt.status not in allowed_from:
            raise InvalidTransition(attempt, target)

        previous = attempt.status
        attempt.status = target
        for name, value in fields.items():
            setattr(attempt, name, value)
        attempt.save()

    logger.info(f"Payment {attempt.id} (registration {attempt.registration_id}): {previous} -> {target}")
    return attempt


def _fail(attempt_id, allowed_from, reason):
    attempt = _move(attempt_id, allowed_from, PaymentAttempt.FAILED, failure_reason=reason)
    logger.warning(f"Payment {attempt.id} failed: {reason}")
    return attempt


def _page_url(name, **params):
    query = urlencode({k: v for k, v in params.items() if v})
    return f"{reverse(name)}?{query}" if query else reverse(name)


# =========================================================
# 2. CHECKOUT LIFECYCLE
# =========================================================


def start_checkout(registration_id, event_id, amount, currency=None, prefill=None, session_key=''):
    """Opens a new attempt in `loading-gateway`."""
    if not registration_id:
        raise ValidationError("Registration ID is required")

    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid registration amount.")
    if amount <= 0:
        raise ValidationError("Invalid registration amount.")

    prefill = prefill or {}
    attempt = PaymentAttempt.objects.create(
        registration_id=registration_id,
        event_id=event_id,
        session_key=session_key or '',
        amount=amount,
        currency=currency or settings.PAYMENT_DEFAULT_CURRENCY,
        prefill_name=prefill.get('name') or '',
        prefill_email=prefill.get('email') or '',
        prefill_contact=prefill.get('contact') or '',
    )
    logger.info(f"Payment {attempt.id}: checkout opened for registration {registration_id} ({amount})")
    return attempt


def gateway_loaded(attempt_id):
    return _move(attempt_id, (PaymentAttempt.LOADING_GATEWAY,), PaymentAttempt.CREATING_ORDER)


def gateway_failed(attempt_id, reason=GATEWAY_LOAD_ERROR):
    return _fail(attempt_id, (PaymentAttempt.LOADING_GATEWAY,), reason or GATEWAY_LOAD_ERROR)


def create_order(attempt_id, client):
    """
    creating-order -> ready, or -> failed with the backend's reason.
    The pay action stays blocked on failure.
    """
    with transaction.atomic():
        attempt = _lock(attempt_id)
        if attempt.status != PaymentAttempt.CREATING_ORDER or attempt.order_id:
            raise InvalidTransition(attempt, PaymentAttempt.READY)

    try:
        order = client.create_order(attempt.event_id, attempt.registration_id, float(attempt.amount))
    except BackendError as e:
        return _fail(attempt_id, (PaymentAttempt.CREATING_ORDER,), e.message)

    order = order or {}
    if not order.get('orderId'):
        return _fail(attempt_id, (PaymentAttempt.CREATING_ORDER,), INVALID_ORDER_ERROR)

    fields = {
        'order_id': order['orderId'],
        'key_id': order.get('razorpayKeyId') or settings.PAYMENT_KEY_ID,
        'backend_payment_id': order.get('paymentId') or '',
        'currency': order.get('currency') or attempt.currency,
    }
    if order.get('amount') not in (None, ''):
        fields['amount'] = Decimal(str(order['amount']))

    return _move(attempt_id, (PaymentAttempt.CREATING_ORDER,), PaymentAttempt.READY, **fields)


def widget_options(attempt):
    """What the checkout script passes to the payment widget."""
    return {
        'key': attempt.key_id or settings.PAYMENT_KEY_ID,
        'amount': to_minor_units(attempt.amount),
        'currency': attempt.currency,
        'order_id': attempt.order_id,
        'name': settings.PAYMENT_MERCHANT_NAME,
        'description': f"Registration {attempt.registration_id}",
        'prefill': {
            'name': attempt.prefill_name,
            'email': attempt.prefill_email,
            'contact': attempt.prefill_contact,
        },
        'theme': {'color': settings.PAYMENT_THEME_COLOR},
    }


def open_widget(attempt_id):
    """User pressed Pay: ready -> opening-widget."""
    attempt = _move(attempt_id, (PaymentAttempt.READY,), PaymentAttempt.OPENING_WIDGET)
    return widget_options(attempt)


def dismiss_widget(attempt_id):
    """Widget closed by the user: back to ready, no backend call."""
    return _move(attempt_id, (PaymentAttempt.OPENING_WIDGET,), PaymentAttempt.READY)


# =========================================================
# 3. VERIFICATION
# =========================================================


def verify(attempt_id, client, order_id, provider_payment_id, signature):
    """
    opening-widget -> verifying -> succeeded | failed.
      success                   -> success page (registration id + payment id)
      backend said no           -> failed page (registration id + message / payment id)
      backend unreachable       -> error page (registration id + network message)
    """
    attempt = _move(attempt_id, (PaymentAttempt.OPENING_WIDGET,), PaymentAttempt.VERIFYING,
                    provider_payment_id=provider_payment_id or '')
    registration_id = attempt.registration_id

    if not (order_id and provider_payment_id and signature):
        _fail(attempt_id, (PaymentAttempt.VERIFYING,), INVALID_CALLBACK_ERROR)
        return VerificationOutcome(
            PaymentAttempt.FAILED,
            _page_url('payment_failed', registrationId=registration_id, message=INVALID_CALLBACK_ERROR),
            INVALID_CALLBACK_ERROR)

    try:
        client.verify_payment(order_id, provider_payment_id, signature, attempt.backend_payment_id)

    except BackendUnavailable as e:
        _fail(attempt_id, (PaymentAttempt.VERIFYING,), e.message)
        return VerificationOutcome(
            PaymentAttempt.FAILED,
            _page_url('payment_error', registrationId=registration_id, message=e.message),
            e.message)

    except BackendError as e:
        _fail(attempt_id, (PaymentAttempt.VERIFYING,), e.message)
        if e.status_code is not None and e.status_code < 400:
            # The call went through but the backend rejected the signature
            url = _page_url('payment_failed', registrationId=registration_id,
                            paymentId=provider_payment_id)
        else:
            url = _page_url('payment_failed', registrationId=registration_id, message=e.message)
        return VerificationOutcome(PaymentAttempt.FAILED, url, e.message)

    _move(attempt_id, (PaymentAttempt.VERIFYING,), PaymentAttempt.SUCCEEDED)
    return VerificationOutcome(
        PaymentAttempt.SUCCEEDED,
        _page_url('payment_success', registrationId=registration_id, paymentId=provider_payment_id))
