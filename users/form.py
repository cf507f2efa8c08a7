import re

from django import forms
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _


class LoginForm(forms.Form):
    email = forms.EmailField(error_messages={
                             'required': _("Email is required"), 'invalid': _("Invalid email")})
    password = forms.CharField(widget=forms.PasswordInput, error_messages={
                               'required': _("Password is required")})


GENDER_CHOICES = (
    ('', 'Select gender'),
    ('Male', 'Male'),
    ('Female', 'Female'),
    ('Other', 'Other'),
)

YES_NO_CHOICES = (
    ('no', 'No'),
    ('yes', 'Yes'),
)

# (pattern, message) pairs, checked in order
PASSWORD_RULES = (
    (r'[A-Z]', _("Password must contain at least one uppercase letter")),
    (r'[a-z]', _("Password must contain at least one lowercase letter")),
    (r'[0-9]', _("Password must contain at least one number")),
    (r'[@$!%*?&#]', _("Password must contain at least one special character")),
)


class SignupForm(forms.Form):
    prefix = forms.CharField(max_length=20, error_messages={
                             'required': _("Prefix is required")})
    full_name = forms.CharField(max_length=200, error_messages={
                                'required': _("Full name is required")})
    affiliation = forms.CharField(max_length=255, error_messages={
                                  'required': _("Affiliation is required")})
    designation = forms.CharField(max_length=255, error_messages={
                                  'required': _("Designation is required")})
    email = forms.EmailField(error_messages={
                             'required': _("Email is required"),
                             'invalid': _("Please enter a valid email address")})
    phone = forms.RegexField(regex=r'^[6-9]\d{9}$', error_messages={
                             'required': _("Mobile number is required"),
                             'invalid': _("Please enter a valid 10-digit mobile number")})
    mci_registered = forms.ChoiceField(choices=YES_NO_CHOICES, initial='no',
                                       widget=forms.RadioSelect)
    mci_number = forms.CharField(max_length=100, required=False)
    mci_state = forms.CharField(max_length=100, required=False)
    department = forms.CharField(max_length=255, error_messages={
                                 'required': _("Department is required")})
    gender = forms.ChoiceField(choices=GENDER_CHOICES, error_messages={
                               'required': _("Gender is required")})
    address = forms.CharField(widget=forms.Textarea(attrs={'rows': 2}), error_messages={
                              'required': _("Address is required")})
    country = forms.CharField(max_length=100, initial='India', error_messages={
                              'required': _("Country is required")})
    state = forms.CharField(max_length=100, error_messages={
                            'required': _("State is required")})
    city = forms.CharField(max_length=100, error_messages={
                           'required': _("City is required")})
    pincode = forms.RegexField(regex=r'^\d{5,6}$', error_messages={
                               'required': _("Pincode is required"),
                               'invalid': _("Please enter a valid pincode")})
    password = forms.CharField(widget=forms.PasswordInput, min_length=6, error_messages={
                               'required': _("Password is required"),
                               'min_length': _("Password must be at least 6 characters")})
    confirm_password = forms.CharField(widget=forms.PasswordInput, error_messages={
                                       'required': _("Please confirm your password")})
    term_and_condition = forms.BooleanField(error_messages={
                                            'required': _("You must accept Terms & Conditions to proceed")})

    def clean_password(self):
        password = self.cleaned_data.get('password') or ''
        for pattern, message in PASSWORD_RULES:
            if not re.search(pattern, password):
                raise ValidationError(message)
        return password

    def clean(self):
        cleaned_data = super().clean()

        password = cleaned_data.get('password')
        if password and password != cleaned_data.get('confirm_password'):
            self.add_error('confirm_password', _("Passwords do not match"))

        if cleaned_data.get('mci_registered') == 'yes':
            if not cleaned_data.get('mci_number'):
                self.add_error('mci_number', _("MCI registration number is required"))
            if not cleaned_data.get('mci_state'):
                self.add_error('mci_state', _("MCI registration state is required"))

        return cleaned_data
