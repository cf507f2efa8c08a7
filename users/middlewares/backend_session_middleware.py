from django.conf import settings
from django.shortcuts import redirect
from django.urls import resolve, Resolver404
from django.utils.functional import SimpleLazyObject

from core.api_client import SESSION_PROFILE_KEY, SESSION_TOKEN_KEY, BackendClient


class BackendSessionMiddleware:
    """
    Attaches the backend identity kept in the session to every request:
      request.backend_token    access token or None
      request.backend_profile  cached profile dict
      request.backend          BackendClient carrying the token (lazy)
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path

        # 1. BYPASS: Static files and Media
        if path.startswith(settings.STATIC_URL) or path.startswith(settings.MEDIA_URL):
            return self.get_response(request)

        # 2. ATTACH
        request.backend_token = request.session.get(SESSION_TOKEN_KEY)
        request.backend_profile = request.session.get(SESSION_PROFILE_KEY) or {}
        request.backend = SimpleLazyObject(lambda: BackendClient.for_request(request))

        # 3. Logged in users have nothing to do on the login page
        if request.backend_token:
            try:
                if resolve(path).url_name in ('login', 'signup'):
                    return redirect('event_list')
            except Resolver404:
                pass

        return self.get_response(request)
