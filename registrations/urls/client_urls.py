from django.urls import path
from ..views import *


urlpatterns = [
    # --- PAGES ---
    path('mine/', my_registrations_view, name='my_registrations'),

    # Multi-step flow (e.g. /registrations/<event_id>/details/)
    path('<str:event_id>/details/', registration_details_view, name='registration_details'),
    path('<str:event_id>/accompanying/', registration_accompanying_view,
         name='registration_accompanying'),
    path('<str:event_id>/confirm/', registration_confirm_view, name='registration_confirm'),

    # --- ACTIONS ---
    path('<str:event_id>/files/<str:bucket>/<str:field_id>/clear/',
         registration_clear_file_view, name='registration_clear_file'),
]
