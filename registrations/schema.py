import hashlib
from collections import namedtuple

from django import forms
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import UploadedFile
from django.utils.translation import gettext_lazy as _

from .descriptors import FieldKind
from .uploads import accept_attribute, validate_upload

ADDITIONAL_PREFIX = 'additional_'
DYNAMIC_PREFIX = 'dynamic_'

GENDER_CHOICES = (
    ('Male', 'Male'),
    ('Female', 'Female'),
    ('Other', 'Other'),
)

# Used when the event has no meal preferences configured
DEFAULT_MEAL_CHOICES = (
    ('Vegetarian', 'Vegetarian'),
    ('Non-Vegetarian', 'Non-Vegetarian'),
    ('Vegan', 'Vegan'),
)

PROFILE_FIELDS = (
    'prefix', 'full_name', 'gender', 'email', 'phone', 'affiliation',
    'designation', 'medical_council_registration', 'medical_council_state',
    'address', 'country', 'state', 'city', 'pincode', 'meal_preference',
    'accepted_terms', 'category_id',
)

SchemaKey = namedtuple('SchemaKey', ['category_id', 'fields_digest'])


def additional_key(field_id):
    return f"{ADDITIONAL_PREFIX}{field_id}"


def dynamic_key(field_id):
    return f"{DYNAMIC_PREFIX}{field_id}"


# ==========================================
# 1. STATIC PROFILE FIELDS
# ==========================================


class BasicDetailsForm(forms.Form):
    """
    The fields every attendee fills regardless of event or category.
    """
    prefix = forms.CharField(max_length=20, error_messages={
                             'required': _("Prefix is required")})
    full_name = forms.CharField(max_length=200, error_messages={
                                'required': _("Full Name is required")})
    gender = forms.ChoiceField(choices=GENDER_CHOICES, error_messages={
                               'required': _("Gender is required")})
    email = forms.EmailField(error_messages={
                             'required': _("Email is required"), 'invalid': _("Invalid email")})
    phone = forms.RegexField(regex=r'^\d{10}$', error_messages={
        'required': _("Mobile is required"), 'invalid': _("Mobile must be 10 digits")})
    affiliation = forms.CharField(max_length=255, error_messages={
                                  'required': _("Affiliation is required")})
    designation = forms.CharField(max_length=255, error_messages={
                                  'required': _("Designation is required")})
    medical_council_registration = forms.CharField(max_length=100, error_messages={
        'required': _("Registration is required")})
    medical_council_state = forms.CharField(max_length=100, error_messages={
        'required': _("Medical Council State is required")})
    address = forms.CharField(widget=forms.Textarea(attrs={'rows': 2}), error_messages={
                              'required': _("Address is required")})
    country = forms.CharField(max_length=100, initial='India', error_messages={
                              'required': _("Country is required")})
    state = forms.CharField(max_length=100, error_messages={
                            'required': _("State is required")})
    city = forms.CharField(max_length=100, error_messages={
                           'required': _("City is required")})
    pincode = forms.CharField(max_length=12, error_messages={
                              'required': _("Pincode is required")})
    meal_preference = forms.ChoiceField(choices=DEFAULT_MEAL_CHOICES, error_messages={
        'required': _("Please select a meal preference")})
    accepted_terms = forms.BooleanField(error_messages={
        'required': _("You must accept the terms and conditions")})
    category_id = forms.ChoiceField(choices=(), error_messages={
        'required': _("Please select a registration category")})

    # Filled in by build_registration_form
    schema_key = None
    category = None
    additional_fields = ()
    dynamic_fields = ()

    def clean_pincode(self):
        pincode = (self.cleaned_data.get('pincode') or '').strip()
        if pincode and not pincode.isdigit():
            raise ValidationError(_("Pincode must contain digits only"))
        return pincode

    def clean(self):
        cleaned_data = super().clean()
        # The schema was built for one category; a different one in the data
        # means the caller validated against a stale schema.
        chosen = cleaned_data.get('category_id')
        expected = self.category.id if self.category is not None else None
        if chosen and str(chosen) != expected:
            raise ValidationError(
                _("The registration category changed. Please review the form again."))
        return cleaned_data

    def iter_additional(self):
        for descriptor in self.additional_fields:
            yield descriptor, self[additional_key(descriptor.id)]

    def iter_dynamic(self):
        for descriptor in self.dynamic_fields:
            yield descriptor, self[dynamic_key(descriptor.id)]


# ==========================================
# 2. CHECKBOX GROUP
# ==========================================


class CheckboxGroupField(forms.Field):
    """
    A list of selected option labels. A single submitted value is still a
    list, so the rest of the pipeline never sees a bare string.
    """
    widget = forms.CheckboxSelectMultiple

    def __init__(self, *, options=(), min_selected=None, max_selected=None, label_text='', **kwargs):
        self.min_selected = min_selected
        self.max_selected = max_selected
        self.label_text = label_text
        super().__init__(**kwargs)
        self.widget.choices = [(o, o) for o in options]

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value if v not in (None, '')]
        return [str(value)]

    def validate(self, value):
        # Emptiness is handled through min_selected, not `required`
        if self.required:
            minimum = self.min_selected if self.min_selected is not None else 1
            if len(value) < minimum:
                if minimum == 1:
                    message = _("Please select at least one option for %(label)s")
                else:
                    message = _("Please select at least %(min)s options for %(label)s")
                raise ValidationError(message, code='min_selected',
                                      params={'label': self.label_text, 'min': minimum})

            if self.max_selected is not None and len(value) > self.max_selected:
                raise ValidationError(
                    _("Maximum %(max)s selections allowed for %(label)s"), code='max_selected',
                    params={'label': self.label_text, 'max': self.max_selected})

    def bound_data(self, data, initial):
        return self.to_python(data)


class DeferredFileField(forms.FileField):
    """
    File inputs are optional at the schema level. A previously uploaded
    file (URL string) is accepted as the current value; whether a required
    file is present is decided at submission time.
    """

    def __init__(self, *, file_types=(), max_file_size_mb=None, **kwargs):
        self.file_types = tuple(file_types)
        self.max_file_size_mb = max_file_size_mb
        kwargs['required'] = False
        super().__init__(**kwargs)
        if self.file_types:
            self.widget.attrs['accept'] = accept_attribute(self.file_types)

    def clean(self, data, initial=None):
        if isinstance(data, UploadedFile):
            upload = super().clean(data, initial)
            return validate_upload(upload, self.file_types, self.max_file_size_mb)
        if isinstance(initial, str) and initial:
            return initial
        return None


# ==========================================
# 3. RULE SYNTHESIS
# ==========================================


def field_for_descriptor(descriptor):
    """
    One Django form field per descriptor, switched on kind.
    Unrecognised kinds fall back to an optional string.
    """
    label = descriptor.label
    common = {
        'label': label,
        'help_text': descriptor.description,
    }
    required_msg = {'required': _("%(label)s is required") % {'label': label}}
    kind = descriptor.kind

    if kind in (FieldKind.TEXT_INPUT, FieldKind.TEXT_AREA):
        widget = forms.Textarea(attrs={'rows': 3}) if kind == FieldKind.TEXT_AREA else forms.TextInput
        field = forms.CharField(required=descriptor.required, widget=widget,
                                error_messages=required_msg, **common)
        if descriptor.placeholder:
            field.widget.attrs['placeholder'] = descriptor.placeholder
        return field

    if kind in (FieldKind.SINGLE_SELECT, FieldKind.RADIO):
        choices = [(o, o) for o in descriptor.options]
        if kind == FieldKind.SINGLE_SELECT:
            widget = forms.Select(choices=[('', descriptor.placeholder or '---')] + choices)
        else:
            widget = forms.RadioSelect(choices=choices)
        return forms.CharField(required=descriptor.required, widget=widget,
                               error_messages=required_msg, **common)

    if kind == FieldKind.DATE:
        return forms.CharField(required=descriptor.required,
                               widget=forms.DateInput(attrs={'type': 'date'}),
                               error_messages=required_msg, **common)

    if kind == FieldKind.CHECKBOX_GROUP:
        return CheckboxGroupField(
            required=descriptor.required,
            options=descriptor.options,
            min_selected=descriptor.min_selected,
            max_selected=descriptor.max_selected,
            label_text=label,
            **common,
        )

    if kind == FieldKind.FILE_INPUT:
        return DeferredFileField(
            file_types=descriptor.file_types,
            max_file_size_mb=descriptor.max_file_size_mb,
            **common,
        )

    return forms.CharField(required=False, **common)


def schema_key_for(category, dynamic_fields):
    additional = category.active_fields if category else ()
    digest = hashlib.sha1(repr((
        [f.signature() for f in additional],
        [f.signature() for f in dynamic_fields],
    )).encode('utf-8')).hexdigest()
    return SchemaKey(category.id if category else None, digest)


def build_registration_form(category, dynamic_fields, meal_choices=None, category_choices=None):
    """
    Returns a NEW form class for (category, dynamic fields).
    Nothing is patched in place: changing the category means building
    another class, so an old class can never validate a newer field set.
    """
    additional = tuple(category.active_fields) if category else ()
    dynamic = tuple(dynamic_fields)

    attrs = {
        'schema_key': schema_key_for(category, dynamic),
        'category': category,
        'additional_fields': additional,
        'dynamic_fields': dynamic,
    }

    if meal_choices:
        attrs['meal_preference'] = forms.ChoiceField(
            choices=meal_choices,
            error_messages={'required': _("Please select a meal preference")})

    if category_choices is not None:
        attrs['category_id'] = forms.ChoiceField(
            choices=category_choices,
            error_messages={'required': _("Please select a registration category")})

    for descriptor in additional:
        attrs[additional_key(descriptor.id)] = field_for_descriptor(descriptor)

    for descriptor in dynamic:
        attrs[dynamic_key(descriptor.id)] = field_for_descriptor(descriptor)

    return type('RegistrationForm', (BasicDetailsForm,), attrs)


def category_choices_for(store):
    return [(c.id, f"{c.name} ({c.amount})") for c in store.categories]


def meal_choices_for(meal_preferences):
    choices = []
    for meal in meal_preferences or []:
        name = meal.get('mealName') if isinstance(meal, dict) else meal
        if name:
            choices.append((name, name))
    return choices or list(DEFAULT_MEAL_CHOICES)
