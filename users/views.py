import logging

from django.contrib import messages
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from core.api_client import BackendClient, BackendError, from_backend_profile
from .decorators import token_required
from .form import LoginForm, SignupForm
from .services import display_name, end_backend_session, get_profile, start_backend_session

logger = logging.getLogger(__name__)


def login_view(request):
    form = LoginForm(request.POST or None)
    next_url = request.POST.get('next') or request.GET.get('next') or ''

    if request.method == 'POST' and form.is_valid():
        try:
            token, user = BackendClient().login(
                form.cleaned_data['email'], form.cleaned_data['password'])
        except BackendError as e:
            messages.error(request, e.message)
        else:
            start_backend_session(request, token, user)
            messages.success(request, f"Welcome back, {display_name(user)}")

            if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
                return redirect(next_url)
            return redirect('event_list')

    return render(request, 'users/login.html', {'form': form, 'next': next_url})


def signup_view(request):
    form = SignupForm(request.POST or None)

    if request.method == 'POST' and form.is_valid():
        fields = dict(form.cleaned_data)
        if fields['mci_registered'] != 'yes':
            fields['mci_number'] = ''
            fields['mci_state'] = ''

        try:
            BackendClient().register(fields)
        except BackendError as e:
            if e.status_code == 409:
                form.add_error('email', "This email is already registered")
                messages.error(request, "Email already exists. Please use a different email.")
            else:
                messages.error(request, e.message)
        else:
            logger.info(f"Account created for {fields['email']}")
            messages.success(request, "Registration successful! Please log in.")
            return redirect('login')

    return render(request, 'users/signup.html', {'form': form})


@require_POST
def logout_view(request):
    if request.backend_token:
        try:
            request.backend.logout()
        except BackendError as e:
            # The local session is closed either way
            logger.info(f"Backend logout failed: {e}")
    end_backend_session(request)
    return redirect('login')


@token_required
def profile_view(request):
    try:
        profile = get_profile(request, refresh=True)
    except BackendError as e:
        messages.error(request, e.message)
        profile = request.backend_profile

    if profile is None:
        return redirect('login')

    return render(request, 'users/profile.html', {
        'profile': from_backend_profile(profile),
        'name': display_name(profile),
    })
