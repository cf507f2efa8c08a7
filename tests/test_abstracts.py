"""
Unit tests: abstract form rules and the submission payload.
"""
import json
from datetime import date

import pytest
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile

from abstracts.forms import build_abstract_form
from abstracts.services import (REGISTRATION_REQUIRED_MESSAGE, build_abstract_payload,
                                check_registration, check_submission_open, submit_abstract)

from conftest import FakeBackendClient


CATEGORIES = [
    {'_id': 'cat-1', 'categoryLabel': 'Specialty', 'categoryOptions': ['Cardiology', 'Neurology']},
    {'_id': 'cat-2', 'categoryLabel': 'Presentation Type', 'categoryOptions': ['Oral', 'Poster']},
]


def _data(**extra):
    data = {
        'title': 'Outcomes of early PCI',
        'presenter_name': 'Asha Rao',
        'co_authors': 'R. Kumar\n\n  S. Iyer  \n',
        'abstract': 'A short abstract about outcomes.',
        'confirm_accuracy': 'on',
        'category_cat-1': 'Cardiology',
        'category_cat-2': 'Oral',
    }
    data.update(extra)
    return data


class TestAbstractForm:

    def test_valid_form(self):
        form = build_abstract_form(CATEGORIES)(data=_data())

        assert form.is_valid(), form.errors
        assert form.cleaned_data['co_authors'] == ['R. Kumar', 'S. Iyer']

    def test_word_limit(self):
        form_class = build_abstract_form(CATEGORIES, {'abstractWordCount': 5})
        form = form_class(data=_data(abstract='one two three four five six'))

        assert not form.is_valid()
        assert form.errors['abstract'] == ['Abstract exceeds maximum word limit of 5 words']

    def test_required_upload_and_video(self):
        form_class = build_abstract_form(CATEGORIES, {'uploadFileRequired': True,
                                                      'uploadVideoUrlRequired': True})
        form = form_class(data=_data())

        assert not form.is_valid()
        assert form.errors['upload_file'] == ['Abstract file upload is required']
        assert form.errors['upload_video_url'] == ['Video URL is required']

    def test_presentation_type_only_without_backend_category(self):
        assert 'presentation_type' not in build_abstract_form(CATEGORIES).base_fields
        assert 'presentation_type' in build_abstract_form(CATEGORIES[:1]).base_fields

    def test_upload_type_is_checked(self):
        upload = SimpleUploadedFile('abstract.png', b'png', content_type='image/png')
        form = build_abstract_form(CATEGORIES)(data=_data(), files={'upload_file': upload})

        assert not form.is_valid()
        assert 'upload_file' in form.errors


class TestPayload:

    def test_multipart_shape(self):
        upload = SimpleUploadedFile('abstract.pdf', b'%PDF', content_type='application/pdf')
        form = build_abstract_form(CATEGORIES[:1])(
            data=_data(presentation_type='Poster', upload_video_url='https://video.example.com/1'),
            files={'upload_file': upload})
        assert form.is_valid(), form.errors

        data, files = build_abstract_payload(form)

        assert data['presenterName'] == 'Asha Rao'
        assert data['type'] == 'Poster'
        assert data['uploadVideoUrl'] == 'https://video.example.com/1'
        assert data['coAuthor[0]'] == 'R. Kumar'
        assert data['coAuthor[1]'] == 'S. Iyer'
        assert json.loads(data['categories']) == [{'categoryId': 'cat-1', 'selectedOption': 'Cardiology'}]
        assert files['uploadFile'][0] == 'abstract.pdf'
        assert files['uploadFile'][2] == 'application/pdf'


class TestSubmissionRules:

    def test_deadline(self):
        settings = {'abstractSubmissionEndDate': '2025-10-01T00:00:00.000Z'}
        check_submission_open(settings, today=date(2025, 10, 1))
        with pytest.raises(ValidationError, match="deadline has passed"):
            check_submission_open(settings, today=date(2025, 10, 2))

    def test_registration_required(self):
        client = FakeBackendClient(registration={'_id': 'reg-1', 'eventId': {'_id': 'other'}})
        with pytest.raises(ValidationError) as excinfo:
            check_registration(client, 'evt-1', {'regRequiredForAbstractSubmission': True})
        assert excinfo.value.messages == [REGISTRATION_REQUIRED_MESSAGE]

    def test_registered_attendee_may_submit(self):
        client = FakeBackendClient(registration={'_id': 'reg-1', 'eventId': 'evt-1'})
        form = build_abstract_form(CATEGORIES)(data=_data())
        assert form.is_valid(), form.errors

        result = submit_abstract(client, 'evt-1', form, {'regRequiredForAbstractSubmission': True})

        assert result == {'_id': 'abs-1'}
        event_id, data, files = client.called('submit_abstract')[0]
        assert event_id == 'evt-1'
        assert 'type' not in data
        assert files == {}
