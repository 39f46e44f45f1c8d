"""
File upload handling for form submissions
Validates size and type, then stores files under UPLOAD_DIR/connect2form
"""

import os
import uuid
from typing import Dict, Optional, Tuple
from werkzeug.utils import secure_filename

import config

UPLOAD_SUBDIR = 'connect2form'

ALLOWED_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'jpe': 'image/jpeg',
    'gif': 'image/gif',
    'png': 'image/png',
    'pdf': 'application/pdf',
    'doc': 'application/msword',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'txt': 'text/plain',
}

# Browsers send these when they don't know better; they say nothing about content
GENERIC_MIMETYPES = ('', 'application/octet-stream', 'binary/octet-stream')

# Other names clients use for the same type
MIME_ALIASES = {
    'image/jpeg': ('image/jpg', 'image/pjpeg'),
    'image/png': ('image/x-png',),
    'application/pdf': ('application/x-pdf',),
}


def format_size(num_bytes: int) -> str:
    for unit in ('B', 'KB', 'MB', 'GB'):
        if num_bytes < 1024 or unit == 'GB':
            return f'{num_bytes:g} {unit}' if unit == 'B' else f'{num_bytes:.0f} {unit}'
        num_bytes /= 1024.0


def file_size(storage) -> int:
    stream = storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def validate_upload(filename: str, size: int, mimetype: str = '',
                    max_bytes: int = None) -> Optional[str]:
    """Return an error message, or None when the file is acceptable."""
    max_bytes = config.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if size > max_bytes:
        return f'File size must be less than {format_size(max_bytes)}.'

    expected = ALLOWED_TYPES.get(extension(filename))
    if not expected:
        return 'File type not allowed.'

    mimetype = (mimetype or '').split(';')[0].strip().lower()
    if mimetype not in GENERIC_MIMETYPES and mimetype != expected \
            and mimetype not in MIME_ALIASES.get(expected, ()):
        return 'File content does not match extension.'
    return None


def extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower().lstrip('.')


def unique_filename(original: str) -> str:
    base = secure_filename(os.path.splitext(original)[0]) or 'upload'
    return f'{base}_{uuid.uuid4().hex}.{extension(original)}'


def save_uploads(files, upload_dir: str = None, base_url: str = None) -> Tuple[Dict[str, dict], Optional[str]]:
    """Validate and store every non-empty file input.

    files is a mapping of field name -> werkzeug FileStorage. Returns
    (descriptors by field name, error). Nothing is written once a file fails.
    """
    upload_dir = os.path.join(upload_dir or config.UPLOAD_DIR, UPLOAD_SUBDIR)
    base_url = (base_url or config.UPLOAD_BASE_URL).rstrip('/')

    pending = []
    for field_name, storage in (files or {}).items():
        if storage is None or not storage.filename:
            continue
        size = file_size(storage)
        error = validate_upload(storage.filename, size, storage.mimetype)
        if error:
            return {}, error
        pending.append((field_name, storage, size))

    if not pending:
        return {}, None

    os.makedirs(upload_dir, exist_ok=True)
    uploaded = {}
    for field_name, storage, size in pending:
        stored_name = unique_filename(storage.filename)
        path = os.path.join(upload_dir, stored_name)
        try:
            storage.save(path)
        except OSError as e:
            print(f"Uploads: Failed to store {storage.filename}: {e}")
            discard_uploads(uploaded)
            return {}, 'File upload failed.'
        uploaded[field_name] = {
            'name': secure_filename(storage.filename),
            'path': path,
            'url': f'{base_url}/{UPLOAD_SUBDIR}/{stored_name}',
            'size': size,
            'type': ALLOWED_TYPES[extension(storage.filename)],
        }
    return uploaded, None


def discard_uploads(uploaded: Dict[str, dict]):
    """Remove stored files for descriptors that will not be kept."""
    for info in uploaded.values():
        try:
            os.remove(info['path'])
        except OSError as e:
            print(f"Uploads: Failed to remove {info['path']}: {e}")
