from django import forms
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from .schema import DEFAULT_MEAL_CHOICES, GENDER_CHOICES

RELATION_CHOICES = (
    ('Spouse', 'Spouse'),
    ('Child', 'Child'),
    ('Parent', 'Parent'),
    ('Sibling', 'Sibling'),
    ('Friend', 'Friend'),
    ('Other', 'Other'),
)

MAX_ACCOMPANYING_PERSONS = 5


# ==========================================
# 1. ACCOMPANYING PERSONS (Step 2)
# ==========================================


class AccompanyingPersonForm(forms.Form):
    name = forms.CharField(max_length=200, error_messages={
                           'required': _("Name is required")})
    age = forms.IntegerField(min_value=0, max_value=120, error_messages={
                             'required': _("Age is required")})
    gender = forms.ChoiceField(choices=GENDER_CHOICES, error_messages={
                               'required': _("Gender is required")})
    relation = forms.ChoiceField(choices=RELATION_CHOICES, error_messages={
                                 'required': _("Relation is required")})
    meal_preference = forms.ChoiceField(choices=DEFAULT_MEAL_CHOICES, error_messages={
        'required': _("Please select a meal preference")})

    def __init__(self, *args, meal_choices=None, **kwargs):
        super().__init__(*args, **kwargs)
        if meal_choices:
            self.fields['meal_preference'].choices = meal_choices

    def to_person(self):
        """Shape sent to the backend inside `accompanyingPersons`."""
        data = self.cleaned_data
        return {
            'name': data['name'],
            'age': str(data['age']),
            'gender': data['gender'],
            'relation': data['relation'],
            'mealPreference': data['meal_preference'],
        }


class BaseAccompanyingFormSet(forms.BaseFormSet):

    def clean(self):
        if any(self.errors):
            return
        names = []
        for form in self.forms:
            if not form.has_changed() or self._should_delete_form(form):
                continue
            name = form.cleaned_data.get('name', '').strip().lower()
            if name in names:
                raise ValidationError(_("The same person is listed twice."))
            names.append(name)

    def persons(self):
        return [
            form.to_person() for form in self.forms
            if form.has_changed() and not self._should_delete_form(form)
        ]


AccompanyingFormSet = forms.formset_factory(
    AccompanyingPersonForm,
    formset=BaseAccompanyingFormSet,
    extra=1,
    max_num=MAX_ACCOMPANYING_PERSONS,
    validate_max=True,
    can_delete=True,
)


def initial_from_persons(persons):
    """Stored persons -> formset initial data."""
    return [
        {
            'name': p.get('name'),
            'age': p.get('age'),
            'gender': p.get('gender'),
            'relation': p.get('relation'),
            'meal_preference': p.get('mealPreference'),
        }
        for p in persons
    ]
