import logging

from django.core.files.base import File

from core.api_client import dumps_compact, to_backend_profile
from .descriptors import FieldKind
from .store import ADDITIONAL, DYNAMIC

logger = logging.getLogger(__name__)

# Multipart part names for binaries: prefix + field id
ADDITIONAL_FILE_PREFIX = 'file_'
DYNAMIC_FILE_PREFIX = 'dynamic_file_'

# Profile fields the backend does not take as multipart parts
NON_WIRE_FIELDS = ('accepted_terms',)


def additional_file_part(field_id):
    return f"{ADDITIONAL_FILE_PREFIX}{field_id}"


def dynamic_file_part(field_id):
    return f"{DYNAMIC_FILE_PREFIX}{field_id}"


def _wire_id(field_id):
    """Category field ids are numeric on the backend."""
    return int(field_id) if str(field_id).isdigit() else field_id


def _is_live_file(value):
    return isinstance(value, File) or (hasattr(value, 'read') and hasattr(value, 'name'))


def _as_list(value):
    if value in (None, ''):
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


class RegistrationPayload:
    """
    Everything the backend needs for one registration:
      fields             flat profile parts (backend names)
      additional_answers ordered category-additional answer records
      dynamic_answers    ordered dynamic-form answer records
      files              part name -> file handle
    """

    def __init__(self, fields, additional_answers, dynamic_answers, files):
        self.fields = fields
        self.additional_answers = additional_answers
        self.dynamic_answers = dynamic_answers
        self.files = files

    def to_multipart(self):
        data = dict(self.fields)
        data['additionalAnswers'] = dumps_compact(self.additional_answers)
        data['dynamicFormAnswers'] = dumps_compact(self.dynamic_answers)

        files = {}
        for part_name, handle in self.files.items():
            filename = getattr(handle, 'name', part_name) or part_name
            content_type = getattr(handle, 'content_type', None) or 'application/octet-stream'
            files[part_name] = (filename.rsplit('/', 1)[-1], handle, content_type)
        return data, files

    def close(self):
        for handle in self.files.values():
            try:
                handle.close()
            except (AttributeError, OSError):
                logger.debug(f"Could not close upload handle {handle!r}")


def _split_file(value, ref, opener):
    """
    -> (textual value, live handle or None)
    A live handle (fresh upload) wins; a URL string (already stored by the
    backend) stays the textual answer; nothing at all yields (None, None).
    """
    if _is_live_file(value):
        return None, value
    if ref is not None and ref.is_pending:
        return None, opener(ref)
    if isinstance(value, str) and value:
        return value, None
    if ref is not None and ref.is_persisted:
        return ref.url, None
    return None, None


def _answer_value(descriptor, value):
    if descriptor.kind == FieldKind.CHECKBOX_GROUP:
        return _as_list(value)
    if value is None:
        return ''
    if isinstance(value, (list, tuple)):
        return ', '.join(str(v) for v in value)
    return value


def normalize_additional(descriptors, values, file_refs, opener):
    answers = []
    files = {}
    for descriptor in descriptors:
        record = {
            'id': _wire_id(descriptor.id),
            'label': descriptor.label,
            'type': descriptor.raw_kind,
            'value': None,
            'fileUrl': None,
        }
        raw = values.get(descriptor.id)
        if descriptor.is_file:
            text, handle = _split_file(raw, file_refs.get(descriptor.id), opener)
            if handle is not None:
                files[additional_file_part(descriptor.id)] = handle
            # A kept upload travels as its URL in value, fileUrl stays null
            record['value'] = text
        else:
            record['value'] = _answer_value(descriptor, raw)
        answers.append(record)
    return answers, files


def normalize_dynamic(descriptors, values, file_refs, opener):
    answers = []
    files = {}
    for descriptor in descriptors:
        record = {
            'id': descriptor.id,
            'label': descriptor.label,
            'type': descriptor.raw_kind,
            'required': descriptor.required,
            'value': None,
            'fileUrl': None,
        }
        if descriptor.options:
            record['options'] = list(descriptor.options)
        if descriptor.min_selected is not None:
            record['minSelected'] = descriptor.min_selected
        if descriptor.max_selected is not None:
            record['maxSelected'] = descriptor.max_selected

        raw = values.get(descriptor.id)
        if descriptor.is_file:
            text, handle = _split_file(raw, file_refs.get(descriptor.id), opener)
            if handle is not None:
                files[dynamic_file_part(descriptor.id)] = handle
            record['value'] = text
        else:
            record['value'] = _answer_value(descriptor, raw)
        answers.append(record)
    return answers, files


def normalize_draft(view, descriptor_store, opener):
    """
    Draft (read-only view) -> RegistrationPayload.
    `opener` turns a pending FileRef into a readable handle.
    """
    category = descriptor_store.category(view.category_id)
    additional_fields, dynamic_fields = descriptor_store.fields_for(category)

    profile = {k: v for k, v in view.basic.items() if k not in NON_WIRE_FIELDS}
    profile['category_id'] = view.category_id
    fields = to_backend_profile(profile)

    if view.accompanying_persons:
        fields['accompanyingPersons'] = dumps_compact(
            [dict(p) for p in view.accompanying_persons])

    additional_answers, additional_files = normalize_additional(
        additional_fields, view.answers(ADDITIONAL), view.files(ADDITIONAL), opener)
    dynamic_answers, dynamic_files = normalize_dynamic(
        dynamic_fields, view.answers(DYNAMIC), view.files(DYNAMIC), opener)

    files = {}
    files.update(additional_files)
    files.update(dynamic_files)

    return RegistrationPayload(fields, additional_answers, dynamic_answers, files)
