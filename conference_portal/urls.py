"""
URL configuration for conference_portal project.
"""

from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.views.generic import RedirectView

# ======================
# URL Patterns
# ======================


urlpatterns = [
    path("", RedirectView.as_view(url='dashboard/', permanent=False)),
]

client_urls = [
    path("dashboard/", include('core.urls.client_urls')),
    path('users/', include('users.urls.client_urls')),
    path('events/', include('events.urls.client_urls')),
    path('registrations/', include('registrations.urls.client_urls')),
    path('payments/', include('payments.urls.client_urls')),
    path('badges/', include('badges.urls.client_urls')),
    path('abstracts/', include('abstracts.urls.client_urls')),
]
urlpatterns += client_urls

# ======================
# Static & Media
# ======================

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL,
                          document_root=settings.STATIC_ROOT)
