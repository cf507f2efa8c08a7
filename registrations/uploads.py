import os

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

# Extension -> MIME type, for the `accept` attribute of file inputs
MIME_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'pdf': 'application/pdf',
    'doc': 'application/msword',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'xls': 'application/vnd.ms-excel',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'ppt': 'application/vnd.ms-powerpoint',
    'pptx': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'txt': 'text/plain',
    'csv': 'text/csv',
    'zip': 'application/zip',
    'mp4': 'video/mp4',
}


def validate_upload(upload, file_types=(), max_file_size_mb=None):
    """
    Size and extension checks for one attached file.
    Size falls back to UPLOAD_DEFAULT_MAX_MB when the field sets none.
    """
    if upload:
        # 1. Size Validation
        limit_mb = max_file_size_mb or settings.UPLOAD_DEFAULT_MAX_MB
        if upload.size > limit_mb * 1024 * 1024:
            raise ValidationError(
                _("File size exceeds %(limit)sMB limit") % {'limit': limit_mb}, code='file_size')

        # 2. Extension Validation (only when the field restricts types)
        ext = os.path.splitext(upload.name)[1].lower().lstrip('.')
        if file_types and ext not in file_types:
            raise ValidationError(
                _("File type not allowed. Allowed: %(types)s") % {'types': ', '.join(file_types)},
                code='file_type')

    return upload


def accept_attribute(file_types):
    if not file_types:
        return '*/*'
    return ','.join(MIME_TYPES.get(ext, f".{ext}") for ext in file_types)


def format_file_size(size):
    if not size:
        return '0 Bytes'
    for unit in ('Bytes', 'KB', 'MB'):
        if size < 1024:
            return f"{round(size, 2):g} {unit}"
        size /= 1024
    return f"{round(size, 2):g} GB"
