from django.urls import path
from ..views import *


urlpatterns = [
    path('<str:registration_id>/', badge_detail_view, name='badge_detail'),
    path('<str:registration_id>/pdf/', badge_pdf_view, name='badge_pdf'),
    path('<str:registration_id>/qr.png', badge_qr_view, name='badge_qr'),
]
