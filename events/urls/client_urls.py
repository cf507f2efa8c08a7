from django.urls import path
from ..views import *


urlpatterns = [
    path('', event_list_view, name='event_list'),
    path('<str:event_id>/', event_detail_view, name='event_detail'),
]
