from django.db import models


class PaymentAttempt(models.Model):
    """
    One visit to the checkout page for one registration.
    `status` follows the checkout state machine; see
    payments.services.orchestrator for the allowed transitions.
    """
    LOADING_GATEWAY = 'loading-gateway'
    CREATING_ORDER = 'creating-order'
    READY = 'ready'
    OPENING_WIDGET = 'opening-widget'
    VERIFYING = 'verifying'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'

    STATUS_CHOICES = (
        (LOADING_GATEWAY, 'Loading payment gateway'),
        (CREATING_ORDER, 'Creating order'),
        (READY, 'Ready to pay'),
        (OPENING_WIDGET, 'Payment window open'),
        (VERIFYING, 'Verifying payment'),
        (SUCCEEDED, 'Succeeded'),
        (FAILED, 'Failed'),
    )

    registration_id = models.CharField(max_length=64, db_index=True)
    event_id = models.CharField(max_length=64)
    session_key = models.CharField(max_length=40, blank=True, db_index=True)

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')

    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=LOADING_GATEWAY)
    failure_reason = models.TextField(blank=True)

    # Order minted by the backend
    order_id = models.CharField(max_length=100, blank=True)
    key_id = models.CharField(max_length=100, blank=True)
    backend_payment_id = models.CharField(max_length=100, blank=True)

    # Returned by the widget
    provider_payment_id = models.CharField(max_length=100, blank=True)

    # Widget prefill
    prefill_name = models.CharField(max_length=200, blank=True)
    prefill_email = models.EmailField(blank=True)
    prefill_contact = models.CharField(max_length=20, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payments_payment_attempt'
        ordering = ['-created_at']

    def __str__(self):
        return f"Payment {self.id} [{self.status}] for registration {self.registration_id}"

    @property
    def is_final(self):
        return self.status in (self.SUCCEEDED, self.FAILED)
