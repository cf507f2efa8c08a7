from django import forms
from django.utils.translation import gettext_lazy as _

from registrations.uploads import accept_attribute, validate_upload

PRESENTATION_TYPES = (
    ('Poster', 'Poster'),
    ('Oral', 'Oral'),
    ('Presentation', 'Presentation'),
)

CATEGORY_PREFIX = 'category_'
ABSTRACT_FILE_TYPES = ('pdf', 'doc', 'docx')
DEFAULT_WORD_LIMIT = 500


def category_key(category_id):
    return f"{CATEGORY_PREFIX}{category_id}"


def count_words(text):
    return len((text or '').split())


class AbstractForm(forms.Form):
    """
    Static part of the abstract form. The event's abstract categories and
    its settings (word limit, mandatory upload / video) are attached by
    build_abstract_form.
    """
    title = forms.CharField(max_length=300, error_messages={
                            'required': _("Title is required")})
    presenter_name = forms.CharField(max_length=200, error_messages={
                                     'required': _("Presenter name is required")})
    co_authors = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 3}),
                                 help_text=_("One co-author per line"))
    abstract = forms.CharField(widget=forms.Textarea(attrs={'rows': 10}), error_messages={
                               'required': _("Abstract is required")})
    upload_file = forms.FileField(required=False)
    upload_video_url = forms.URLField(required=False, error_messages={
                                      'invalid': _("Enter a valid video URL")})
    confirm_accuracy = forms.BooleanField(error_messages={
        'required': _("Please confirm that the information is accurate")})

    # Filled in by build_abstract_form
    categories = ()
    word_limit = DEFAULT_WORD_LIMIT
    file_required = False
    video_required = False

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['upload_file'].widget.attrs['accept'] = accept_attribute(ABSTRACT_FILE_TYPES)

    def clean_upload_file(self):
        return validate_upload(self.cleaned_data.get('upload_file'), ABSTRACT_FILE_TYPES)

    def clean_co_authors(self):
        raw = self.cleaned_data.get('co_authors') or ''
        return [line.strip() for line in raw.splitlines() if line.strip()]

    def clean(self):
        cleaned_data = super().clean()

        if count_words(cleaned_data.get('abstract')) > self.word_limit:
            self.add_error('abstract', _("Abstract exceeds maximum word limit of %(max)s words")
                           % {'max': self.word_limit})

        if self.file_required and not cleaned_data.get('upload_file') and 'upload_file' not in self.errors:
            self.add_error('upload_file', _("Abstract file upload is required"))

        if self.video_required and not cleaned_data.get('upload_video_url') and 'upload_video_url' not in self.errors:
            self.add_error('upload_video_url', _("Video URL is required"))

        return cleaned_data

    def iter_categories(self):
        for category in self.categories:
            yield category, self[category_key(category['_id'])]

    def selected_categories(self):
        """[{categoryId, selectedOption}] in the order the backend listed them."""
        return [
            {'categoryId': c['_id'], 'selectedOption': self.cleaned_data.get(category_key(c['_id']))}
            for c in self.categories
        ]


def build_abstract_form(categories, abstract_settings=None):
    """A new form class for the event's categories and settings."""
    abstract_settings = abstract_settings or {}
    categories = tuple(c for c in (categories or []) if c.get('_id'))

    attrs = {
        'categories': categories,
        'word_limit': int(abstract_settings.get('abstractWordCount') or DEFAULT_WORD_LIMIT),
        'file_required': bool(abstract_settings.get('uploadFileRequired')),
        'video_required': bool(abstract_settings.get('uploadVideoUrlRequired')),
    }

    for category in categories:
        options = [(o, o) for o in category.get('categoryOptions') or []]
        attrs[category_key(category['_id'])] = forms.ChoiceField(
            label=category.get('categoryLabel') or '',
            choices=[('', '---')] + options,
            error_messages={'required': _("Please select all required categories")},
        )

    # Presentation type is only asked here when no backend category covers it
    if not any(_is_presentation_category(c) for c in categories):
        attrs['presentation_type'] = forms.ChoiceField(
            choices=PRESENTATION_TYPES, initial='Poster',
            error_messages={'required': _("Presentation type is required")})

    return type('AbstractSubmissionForm', (AbstractForm,), attrs)


def _is_presentation_category(category):
    label = (category.get('categoryLabel') or '').lower()
    return 'presentation' in label or 'type' in label

