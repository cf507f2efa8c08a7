from .payment_attempt import PaymentAttempt
