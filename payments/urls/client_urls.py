from django.urls import path
from ..views import *


urlpatterns = [
    # --- PAGES ---
    path('checkout/<str:registration_id>/', checkout_view, name='payment_checkout'),
    path('success/', payment_success_view, name='payment_success'),
    path('failed/', payment_failed_view, name='payment_failed'),
    path('error/', payment_error_view, name='payment_error'),

    # --- APIs (Used by the checkout script) ---
    path('api/<int:attempt_id>/gateway-loaded/', api_gateway_loaded, name='api_payment_gateway_loaded'),
    path('api/<int:attempt_id>/gateway-failed/', api_gateway_failed, name='api_payment_gateway_failed'),
    path('api/<int:attempt_id>/open/', api_open_widget, name='api_payment_open'),
    path('api/<int:attempt_id>/dismiss/', api_dismiss_widget, name='api_payment_dismiss'),
    path('api/<int:attempt_id>/verify/', api_verify_payment, name='api_payment_verify'),
]
