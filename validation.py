"""
Submission validation
Checks posted values against a form's field schema. Returns the first
error message, or None when the submission is valid.
"""

import re
import time
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse
import requests

import config

RECAPTCHA_VERIFY_URL = 'https://www.google.com/recaptcha/api/siteverify'
RECAPTCHA_TIMEOUT = 10

EMAIL_PATTERN = re.compile(r'^[A-Za-z0-9._%+\'-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$')
KEY_PATTERN = re.compile(r'[^a-z0-9_\-]')

# Field types that carry no submitted value
NON_INPUT_TYPES = ('html', 'submit', 'recaptcha')


def sanitize_key(name: str) -> str:
    return KEY_PATTERN.sub('', str(name).lower())


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def is_valid_email(value: str) -> bool:
    return bool(isinstance(value, str) and EMAIL_PATTERN.match(value.strip()))


def is_valid_url(value: str) -> bool:
    try:
        parsed = urlparse(str(value).strip())
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def is_valid_number(value) -> bool:
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def is_valid_date(value) -> bool:
    value = str(value)
    try:
        parsed = datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return parsed.strftime('%Y-%m-%d') == value


def _option_values(options) -> list:
    values = []
    for option in options or []:
        if isinstance(option, dict):
            values.append(str(option.get('value', option.get('label', ''))))
        else:
            values.append(str(option))
    return values


def check_honeypot(data: dict) -> Optional[str]:
    if not is_blank(data.get('website')):
        return 'Invalid submission detected.'
    return None


def check_timestamp(data: dict, now: float = None) -> Optional[str]:
    """Reject submissions rendered more than SUBMISSION_MAX_AGE_SECONDS ago."""
    raw = data.get('timestamp')
    if is_blank(raw):
        return None
    try:
        rendered_at = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        rendered_at = 0
    now = time.time() if now is None else now
    if now - rendered_at > config.SUBMISSION_MAX_AGE_SECONDS:
        return 'Submission expired. Please refresh the page and try again.'
    return None


def verify_recaptcha(data: dict, secret: str, client_ip: str = '') -> Optional[str]:
    token = data.get('g-recaptcha-response')
    if is_blank(token):
        return 'Please complete the CAPTCHA verification.'
    if not secret:
        return 'reCAPTCHA is not properly configured.'

    try:
        resp = requests.post(
            RECAPTCHA_VERIFY_URL,
            data={'secret': secret, 'response': token, 'remoteip': client_ip},
            timeout=RECAPTCHA_TIMEOUT,
        )
        result = resp.json()
    except (requests.RequestException, ValueError) as e:
        print(f"Validation: reCAPTCHA request failed: {e}")
        return 'CAPTCHA verification failed. Please try again.'

    if not result or not result.get('success'):
        return 'CAPTCHA verification failed. Please try again.'
    return None


def validate_field(field: dict, value) -> Optional[str]:
    label = field.get('label') or field.get('name')
    field_type = field.get('type', 'text')

    if field.get('required') and is_blank(value):
        return f'The field "{label}" is required.'
    if is_blank(value):
        return None

    if field_type == 'email' and not is_valid_email(value):
        return f'Please enter a valid email address for "{label}".'
    if field_type == 'url' and not is_valid_url(value):
        return f'Please enter a valid URL for "{label}".'
    if field_type == 'number' and not is_valid_number(value):
        return f'Please enter a valid number for "{label}".'
    if field_type == 'date' and not is_valid_date(value):
        return f'Please enter a valid date for "{label}".'
    if field_type in ('select', 'radio') and field.get('options'):
        allowed = _option_values(field['options'])
        values = value if isinstance(value, (list, tuple)) else [value]
        if any(str(v) not in allowed for v in values):
            return f'Please select a valid option for "{label}".'
    return None


def validate_submission(fields: list, data: dict, recaptcha_secret: str = None,
                        client_ip: str = '') -> Optional[str]:
    """Validate posted data against the form's field list.

    File fields are checked separately by uploads.validate_upload; here they
    only need to be present when required, which the caller covers by
    merging file names into data.
    """
    if not fields:
        return 'No form fields found'
    if not isinstance(fields, list):
        return 'Invalid form configuration'

    has_recaptcha = False
    for field in fields:
        if not isinstance(field, dict):
            continue
        if field.get('type') == 'recaptcha':
            has_recaptcha = True
        if not field.get('name') or field.get('type') in NON_INPUT_TYPES:
            continue

        name = sanitize_key(field['name'])
        error = validate_field(field, data.get(name, ''))
        if error:
            return error

    if has_recaptcha:
        secret = config.RECAPTCHA_SECRET_KEY if recaptcha_secret is None else recaptcha_secret
        return verify_recaptcha(data, secret, client_ip)
    return None
