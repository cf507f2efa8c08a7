from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from .store import ADDITIONAL, DYNAMIC, STEP_DETAILS


class MissingRequiredFile(ValidationError):
    """
    A required file-input field has neither a new upload nor a file the
    backend already stores. Carries enough to send the user back to the
    right step with the right field highlighted.
    """

    def __init__(self, descriptor, bucket, step=STEP_DETAILS):
        self.descriptor = descriptor
        self.bucket = bucket
        self.step = step
        super().__init__(
            _("File upload required for: %(label)s") % {'label': descriptor.label},
            code='missing_file',
        )

    @property
    def field_key(self):
        prefix = 'additional_' if self.bucket == ADDITIONAL else 'dynamic_'
        return f"{prefix}{self.descriptor.id}"


def _has_file(view, bucket, descriptor):
    ref = view.file_ref(bucket, descriptor.id)
    if ref is None:
        return False
    if ref.is_pending:
        return bool(ref.path)
    return bool(ref.url)


def missing_required_files(view, descriptor_store):
    """Every (descriptor, bucket) whose required file is absent, in form order."""
    category = descriptor_store.category(view.category_id)
    additional_fields, dynamic_fields = descriptor_store.fields_for(category)

    missing = []
    for bucket, descriptors in ((ADDITIONAL, additional_fields), (DYNAMIC, dynamic_fields)):
        for descriptor in descriptors:
            if descriptor.is_file and descriptor.required and not _has_file(view, bucket, descriptor):
                missing.append((descriptor, bucket))
    return missing


def check_required_files(view, descriptor_store):
    """
    Hard gate run before any network call: raises MissingRequiredFile for
    the first required file that is missing.
    """
    missing = missing_required_files(view, descriptor_store)
    if missing:
        descriptor, bucket = missing[0]
        raise MissingRequiredFile(descriptor, bucket)

