from django.contrib import messages
from django.http import HttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET

from core.api_client import BackendError
from payments.services.checkout import is_paid
from users.decorators import token_required
from .services import (BadgeRenderError, badge_context, badge_filename, generate_qr_data_uri,
                       generate_qr_png, render_badge_pdf)


def _paid_registration(request, registration_id):
    """-> (registration, None) or (None, redirect response)"""
    try:
        registration = request.backend.get_registration(registration_id)
    except BackendError as e:
        messages.error(request, e.message)
        return None, redirect('my_registrations')

    if not is_paid(registration):
        messages.info(request, "Complete the payment to get your badge")
        return None, redirect('payment_checkout', registration_id=registration_id)

    return registration, None


@token_required
@require_GET
def badge_detail_view(request, registration_id):
    registration, response = _paid_registration(request, registration_id)
    if response:
        return response

    context = badge_context(registration)
    context['qr_data_uri'] = generate_qr_data_uri(context['qr_payload'])
    return render(request, 'badges/badge.html', context)


@token_required
@require_GET
def badge_pdf_view(request, registration_id):
    registration, response = _paid_registration(request, registration_id)
    if response:
        return response

    try:
        context, pdf = render_badge_pdf(registration)
    except BadgeRenderError as e:
        messages.error(request, str(e))
        return redirect('badge_detail', registration_id=registration_id)

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{badge_filename(context, "pdf")}"'
    return response


@token_required
@require_GET
def badge_qr_view(request, registration_id):
    registration, response = _paid_registration(request, registration_id)
    if response:
        return response

    context = badge_context(registration)
    response = HttpResponse(generate_qr_png(context['qr_payload']), content_type='image/png')
    response['Content-Disposition'] = f'inline; filename="{badge_filename(context, "png")}"'
    return response
