from django.urls import path
from ..views import *


urlpatterns = [
    path('<str:event_id>/', my_abstracts_view, name='my_abstracts'),
    path('<str:event_id>/submit/', submit_abstract_view, name='submit_abstract'),
]
