import logging

from core.api_client import SESSION_PROFILE_KEY, SESSION_TOKEN_KEY, BackendError, from_backend_profile

logger = logging.getLogger(__name__)


def start_backend_session(request, token, user=None):
    # New identity, new session id
    request.session.cycle_key()
    request.session[SESSION_TOKEN_KEY] = token
    request.session[SESSION_PROFILE_KEY] = user or {}


def end_backend_session(request):
    """Drops the token, the profile and every draft of the session."""
    request.session.flush()


def get_profile(request, refresh=False):
    """
    The backend profile, cached in the session. A 401 means the token
    expired: the session is closed and None is returned.
    """
    cached = request.session.get(SESSION_PROFILE_KEY)
    if cached and not refresh:
        return cached

    try:
        profile = request.backend.get_profile() or {}
    except BackendError as e:
        if e.status_code == 401:
            logger.info("Backend token rejected, closing session")
            end_backend_session(request)
            return None
        raise

    request.session[SESSION_PROFILE_KEY] = profile
    return profile


def display_name(profile):
    return from_backend_profile(profile).get('full_name') or 'User'
