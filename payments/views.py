import logging

from django.conf import settings
from django.contrib import messages
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_POST

from core.api_client import BackendError
from users.decorators import token_required
from .services.checkout import (forget_checkout, owns_attempt, remember_attempt,
                                resolve_checkout_context)
from .services.orchestrator import (InvalidTransition, create_order, dismiss_widget, gateway_failed,
                                    gateway_loaded, open_widget, start_checkout, verify)

logger = logging.getLogger(__name__)


def _attempt_json(attempt, **extra):
    data = {
        'status': 'success',
        'payment_status': attempt.status,
        'message': attempt.failure_reason,
    }
    data.update(extra)
    return data


def _not_owned():
    return JsonResponse({'status': 'error', 'message': 'Payment not found'}, status=404)


# ========================================================
# 1. CHECKOUT PAGE
# ========================================================


@token_required
@require_GET
def checkout_view(request, registration_id):
    """
    Opens a fresh attempt and renders the shell. The script on the page
    drives the rest through the AJAX endpoints below.
    """
    try:
        context = resolve_checkout_context(request.session, request.backend, registration_id)
    except BackendError as e:
        messages.error(request, e.message)
        return redirect('my_registrations')

    if context.get('is_paid'):
        messages.info(request, "This registration is already paid")
        return redirect('badge_detail', registration_id=registration_id)

    if not request.session.session_key:
        request.session.save()

    try:
        attempt = start_checkout(
            registration_id=registration_id,
            event_id=context.get('event_id'),
            amount=context.get('amount'),
            prefill=context.get('prefill'),
            session_key=request.session.session_key,
        )
    except ValidationError as e:
        messages.error(request, e.messages[0])
        return redirect('my_registrations')

    remember_attempt(request.session, attempt)

    return render(request, 'payments/checkout.html', {
        'attempt': attempt,
        'registration_id': registration_id,
        'category_name': context.get('category_name', ''),
        'gateway_script_url': settings.PAYMENT_GATEWAY_SCRIPT_URL,
    })


# ========================================================
# 2. STATE MACHINE APIs (Used by the checkout script)
# ========================================================


@token_required
@require_POST
def api_gateway_loaded(request, attempt_id):
    """Script is present: mint the order right away."""
    if not owns_attempt(request.session, attempt_id):
        return _not_owned()

    try:
        gateway_loaded(attempt_id)
        attempt = create_order(attempt_id, request.backend)
    except InvalidTransition as e:
        return JsonResponse({'status': 'error', 'message': e.messages[0]}, status=409)
    except ValidationError as e:
        return JsonResponse({'status': 'error', 'message': e.messages[0]}, status=400)
    except Exception as e:
        logger.exception(f"Order creation crashed for payment {attempt_id}")
        return JsonResponse({'status': 'error', 'message': f"Server Error: {str(e)}"}, status=500)

    if attempt.is_final:
        return JsonResponse(_attempt_json(attempt, status='error'), status=400)

    return JsonResponse(_attempt_json(attempt, order={
        'id': attempt.order_id,
        'amount': str(attempt.amount),
        'currency': attempt.currency,
    }))


@token_required
@require_POST
def api_gateway_failed(request, attempt_id):
    if not owns_attempt(request.session, attempt_id):
        return _not_owned()

    try:
        attempt = gateway_failed(attempt_id)
    except ValidationError as e:
        return JsonResponse({'status': 'error', 'message': e.messages[0]}, status=409)

    return JsonResponse(_attempt_json(attempt))


@token_required
@require_POST
def api_open_widget(request, attempt_id):
    if not owns_attempt(request.session, attempt_id):
        return _not_owned()

    try:
        options = open_widget(attempt_id)
    except ValidationError as e:
        return JsonResponse({'status': 'error', 'message': e.messages[0]}, status=409)

    return JsonResponse({'status': 'success', 'payment_status': 'opening-widget', 'options': options})


@token_required
@require_POST
def api_dismiss_widget(request, attempt_id):
    if not owns_attempt(request.session, attempt_id):
        return _not_owned()

    try:
        attempt = dismiss_widget(attempt_id)
    except ValidationError as e:
        return JsonResponse({'status': 'error', 'message': e.messages[0]}, status=409)

    return JsonResponse(_attempt_json(attempt))


@token_required
@require_POST
def api_verify_payment(request, attempt_id):
    """Widget completion callback: the provider's signature triple."""
    if not owns_attempt(request.session, attempt_id):
        return _not_owned()

    try:
        outcome = verify(
            attempt_id,
            request.backend,
            order_id=request.POST.get('razorpay_order_id'),
            provider_payment_id=request.POST.get('razorpay_payment_id'),
            signature=request.POST.get('razorpay_signature'),
        )
    except ValidationError as e:
        return JsonResponse({'status': 'error', 'message': e.messages[0]}, status=409)
    except Exception as e:
        logger.exception(f"Verification crashed for payment {attempt_id}")
        return JsonResponse({'status': 'error', 'message': f"Server Error: {str(e)}"}, status=500)

    return JsonResponse({
        'status': 'success' if outcome.succeeded else 'error',
        'payment_status': outcome.status,
        'message': outcome.message,
        'redirect_url': outcome.redirect_url,
    })


# ========================================================
# 3. RESULT PAGES
# ========================================================


@token_required
@require_GET
def payment_success_view(request):
    registration_id = request.GET.get('registrationId', '')
    if registration_id:
        forget_checkout(request.session, registration_id)

    return render(request, 'payments/success.html', {
        'registration_id': registration_id,
        'payment_id': request.GET.get('paymentId', ''),
    })


@token_required
@require_GET
def payment_failed_view(request):
    return render(request, 'payments/failed.html', {
        'registration_id': request.GET.get('registrationId', ''),
        'payment_id': request.GET.get('paymentId', ''),
        'message': request.GET.get('message', 'Payment verification failed'),
    })


@token_required
@require_GET
def payment_error_view(request):
    return render(request, 'payments/error.html', {
        'registration_id': request.GET.get('registrationId', ''),
        'message': request.GET.get('message', 'Something went wrong'),
    })
