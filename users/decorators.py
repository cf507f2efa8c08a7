from functools import wraps

from django.conf import settings
from django.contrib.auth.views import redirect_to_login
from django.http import JsonResponse

from core.api_client import SESSION_TOKEN_KEY


def token_required(view_func):
    """
    Like login_required, but for the backend session: pages redirect to the
    login page, AJAX endpoints get a 401 JSON envelope.
    """
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if request.session.get(SESSION_TOKEN_KEY):
            return view_func(request, *args, **kwargs)

        if '/api/' in request.path:
            return JsonResponse({'status': 'error', 'message': 'Please log in again.'}, status=401)
        return redirect_to_login(request.get_full_path(), settings.LOGIN_URL)

    return _wrapped
