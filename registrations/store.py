# registrations/store.py
#
# The per-user, per-event answer store.
#
# RegistrationDraft is the ONLY writer of the draft kept in the session.
# Templates, the normalizer and the validators get a DraftView (read-only).
#
# Answers live in three buckets (basic / additional / dynamic). Files never
# share a slot with text: they sit in a side-table keyed by bucket + field id.

import copy
import logging
import os
import uuid
from types import MappingProxyType

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import UploadedFile
from django.utils import timezone

from .descriptors import FieldDescriptorStore
from .schema import ADDITIONAL_PREFIX, DYNAMIC_PREFIX, PROFILE_FIELDS

logger = logging.getLogger(__name__)

SESSION_PREFIX = 'registration_draft'
PENDING_UPLOAD_DIR = 'pending_uploads'

BASIC = 'basic'
ADDITIONAL = 'additional'
DYNAMIC = 'dynamic'

STEP_DETAILS = 1
STEP_ACCOMPANYING = 2
STEP_CONFIRM = 3


class FileRef:
    """
    Either a file the user attached that has not been sent yet (`pending`,
    stored under pending_uploads/) or a file the backend already holds
    (`persisted`, known only by its URL).
    """
    PENDING = 'pending'
    PERSISTED = 'persisted'

    def __init__(self, kind, name='', path=None, url=None, size=None, content_type=None):
        self.kind = kind
        self.name = name
        self.path = path
        self.url = url
        self.size = size
        self.content_type = content_type

    def __repr__(self):
        return f"<FileRef {self.kind} {self.path or self.url}>"

    @property
    def is_pending(self):
        return self.kind == self.PENDING

    @property
    def is_persisted(self):
        return self.kind == self.PERSISTED

    def to_dict(self):
        return {
            'kind': self.kind,
            'name': self.name,
            'path': self.path,
            'url': self.url,
            'size': self.size,
            'content_type': self.content_type,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(**data)


def _empty_draft(event_id):
    return {
        'event_id': str(event_id),
        'descriptors': None,
        'current_step': STEP_DETAILS,
        'category_id': None,
        'schema_key': None,
        BASIC: {},
        ADDITIONAL: {},
        DYNAMIC: {},
        'files': {ADDITIONAL: {}, DYNAMIC: {}},
        'accompanying_persons': [],
        'skipped_accompanying': False,
    }


class DraftView:
    """Read-only snapshot of a draft."""

    def __init__(self, data):
        self._data = copy.deepcopy(data)

    @property
    def event_id(self):
        return self._data['event_id']

    @property
    def current_step(self):
        return self._data['current_step']

    @property
    def category_id(self):
        return self._data['category_id']

    @property
    def schema_key(self):
        key = self._data.get('schema_key')
        return tuple(key) if key else None

    @property
    def basic(self):
        return MappingProxyType(self._data[BASIC])

    @property
    def additional(self):
        return MappingProxyType(self._data[ADDITIONAL])

    @property
    def dynamic(self):
        return MappingProxyType(self._data[DYNAMIC])

    @property
    def accompanying_persons(self):
        return tuple(MappingProxyType(p) for p in self._data['accompanying_persons'])

    @property
    def skipped_accompanying(self):
        return self._data['skipped_accompanying']

    def file_ref(self, bucket, field_id):
        raw = self._data['files'][bucket].get(str(field_id))
        return FileRef.from_dict(raw) if raw else None

    def files(self, bucket):
        return {fid: FileRef.from_dict(raw) for fid, raw in self._data['files'][bucket].items()}

    def answers(self, bucket):
        return self._data[bucket]

    def initial_form_data(self):
        """Flat initial values for the step 1 form (synthetic keys)."""
        initial = dict(self._data[BASIC])
        if self._data['category_id']:
            initial['category_id'] = self._data['category_id']
        for fid, value in self._data[ADDITIONAL].items():
            initial[f"{ADDITIONAL_PREFIX}{fid}"] = value
        for fid, value in self._data[DYNAMIC].items():
            initial[f"{DYNAMIC_PREFIX}{fid}"] = value
        for bucket, prefix in ((ADDITIONAL, ADDITIONAL_PREFIX), (DYNAMIC, DYNAMIC_PREFIX)):
            for fid, raw in self._data['files'][bucket].items():
                if raw['kind'] == FileRef.PERSISTED:
                    initial[f"{prefix}{fid}"] = raw['url']
        return initial


class RegistrationDraft:
    """
    Owner of one user's in-progress registration for one event.
    """

    def __init__(self, session, event_id, storage=None):
        self._session = session
        self.event_id = str(event_id)
        self.storage = storage or default_storage
        self.session_key = f"{SESSION_PREFIX}:{self.event_id}"
        self._data = session.get(self.session_key) or _empty_draft(event_id)

    def _commit(self):
        self._session[self.session_key] = self._data
        if hasattr(self._session, 'modified'):
            self._session.modified = True

    def view(self):
        return DraftView(self._data)

    # --- descriptors (fetched once per flow) ---

    def descriptors(self):
        raw = self._data.get('descriptors')
        return FieldDescriptorStore.from_dict(raw) if raw else None

    def set_descriptors(self, store):
        self._data['descriptors'] = store.to_dict()
        self._commit()

    # --- steps ---

    def set_step(self, step):
        self._data['current_step'] = step
        self._commit()

    def select_category(self, category):
        """
        Record the chosen category. Switching to another category drops the
        answers (and files) of the previous category's extra fields.
        """
        new_id = category.id if category else None
        if self._data['category_id'] != new_id:
            if self._data['category_id'] is not None:
                logger.info(
                    f"Draft {self.session_key}: category {self._data['category_id']} -> {new_id}, clearing additional answers")
            self._data[ADDITIONAL] = {}
            for fid in list(self._data['files'][ADDITIONAL]):
                self._release(ADDITIONAL, fid)
            self._data['category_id'] = new_id
        self._commit()

    def save_step(self, cleaned_data, form_class):
        """
        Persist a validated step 1 form into the buckets.
        File fields go to the side-table: an upload becomes a pending ref, a
        URL string a persisted ref, and no value keeps whatever is there.
        """
        self.select_category(form_class.category)

        self._data[BASIC] = {
            name: cleaned_data.get(name)
            for name in PROFILE_FIELDS if name not in ('category_id',)
        }

        self._data[ADDITIONAL] = self._split_answers(
            ADDITIONAL, ADDITIONAL_PREFIX, form_class.additional_fields, cleaned_data)
        self._data[DYNAMIC] = self._split_answers(
            DYNAMIC, DYNAMIC_PREFIX, form_class.dynamic_fields, cleaned_data)

        self._data['schema_key'] = list(form_class.schema_key)
        self._commit()

    def _split_answers(self, bucket, prefix, descriptors, cleaned_data):
        answers = {}
        for descriptor in descriptors:
            value = cleaned_data.get(f"{prefix}{descriptor.id}")
            if descriptor.is_file:
                if isinstance(value, UploadedFile):
                    self.attach_file(bucket, descriptor.id, value, commit=False)
                elif isinstance(value, str) and value:
                    self.set_persisted_file(bucket, descriptor.id, value, commit=False)
                continue
            answers[descriptor.id] = value
        return answers

    def set_accompanying(self, persons, skipped=False):
        self._data['accompanying_persons'] = [dict(p) for p in persons]
        self._data['skipped_accompanying'] = skipped
        self._commit()

    def load_existing(self, basic, additional, dynamic, file_urls):
        """
        Seed the draft from an existing registration (editing). Files the
        backend already stores come in as URLs: {(bucket, field_id): url}.
        """
        self._data[BASIC].update(basic or {})
        self._data[ADDITIONAL].update({str(k): v for k, v in (additional or {}).items()})
        self._data[DYNAMIC].update({str(k): v for k, v in (dynamic or {}).items()})
        for (bucket, field_id), url in (file_urls or {}).items():
            self.set_persisted_file(bucket, field_id, url, commit=False)
        self._commit()

    # --- file side-table ---

    def attach_file(self, bucket, field_id, upload, commit=True):
        field_id = str(field_id)
        name = os.path.basename(upload.name or 'upload')
        path = self.storage.save(
            f"{PENDING_UPLOAD_DIR}/{uuid.uuid4().hex}/{name}", upload)
        self._release(bucket, field_id)
        self._data['files'][bucket][field_id] = FileRef(
            FileRef.PENDING, name=name, path=path, size=upload.size,
            content_type=getattr(upload, 'content_type', None)).to_dict()
        if commit:
            self._commit()
        return path

    def set_persisted_file(self, bucket, field_id, url, commit=True):
        field_id = str(field_id)
        current = self._data['files'][bucket].get(field_id)
        if current and current['kind'] == FileRef.PERSISTED and current['url'] == url:
            return
        self._release(bucket, field_id)
        self._data['files'][bucket][field_id] = FileRef(
            FileRef.PERSISTED, name=os.path.basename(url), url=url).to_dict()
        if commit:
            self._commit()

    def clear_file(self, bucket, field_id):
        self._release(bucket, str(field_id))
        self._commit()

    def _release(self, bucket, field_id):
        raw = self._data['files'][bucket].pop(field_id, None)
        if raw and raw['kind'] == FileRef.PENDING and raw.get('path'):
            if self.storage.exists(raw['path']):
                self.storage.delete(raw['path'])
            logger.debug(f"Released pending upload {raw['path']}")

    def open_file(self, ref):
        handle = self.storage.open(ref.path, 'rb')
        handle.content_type = ref.content_type
        return handle

    # --- lifecycle ---

    def reset(self):
        """Drop the draft and every pending upload it still owns."""
        for bucket in (ADDITIONAL, DYNAMIC):
            for fid in list(self._data['files'][bucket]):
                self._release(bucket, fid)
        self._session.pop(self.session_key, None)
        if hasattr(self._session, 'modified'):
            self._session.modified = True
        self._data = _empty_draft(self.event_id)


def prune_pending_uploads(max_age, storage=None, now=None):
    """
    Deletes pending uploads older than `max_age` (a timedelta). They belong
    to drafts that were abandoned without a reset. -> paths removed
    """
    storage = storage or default_storage
    now = now or timezone.now()
    if not storage.exists(PENDING_UPLOAD_DIR):
        return []

    removed = []
    folders, _ = storage.listdir(PENDING_UPLOAD_DIR)
    for folder in folders:
        folder_path = f"{PENDING_UPLOAD_DIR}/{folder}"
        _, names = storage.listdir(folder_path)
        kept = 0
        for name in names:
            path = f"{folder_path}/{name}"
            if now - storage.get_modified_time(path) > max_age:
                storage.delete(path)
                removed.append(path)
            else:
                kept += 1
        if not kept:
            storage.delete(folder_path)

    logger.info(f"Pruned {len(removed)} pending upload(s) older than {max_age}")
    return removed
