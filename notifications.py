"""
Submission notifications
Admin notification email and submitter auto-responder
"""

import html
from datetime import datetime
import pytz

import config
from email_utils import send_email
from validation import is_valid_email

# Keys posted by the form transport, never shown in emails
TRANSPORT_KEYS = ('nonce', 'action', 'form_id', 'timestamp', 'website', 'g-recaptcha-response')

DEFAULT_AUTO_RESPONDER_SUBJECT = 'Thank you for your submission'
DEFAULT_AUTO_RESPONDER_MESSAGE = 'Thank you for contacting us. We will get back to you soon.'


def _now(now: datetime = None) -> datetime:
    tz = pytz.timezone(config.SITE_TIMEZONE)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return pytz.UTC.localize(now).astimezone(tz)
    return now.astimezone(tz)


def format_date(dt: datetime, with_time: bool = False) -> str:
    """e.g. "March 5, 2026" or "March 5, 2026 at 4:07 PM"."""
    text = f'{dt:%B} {dt.day}, {dt.year}'
    if with_time:
        text += f' at {int(dt.strftime("%I"))}:{dt:%M %p}'
    return text


def humanize_key(key: str) -> str:
    return key.replace('_', ' ').replace('-', ' ').strip().capitalize()


def format_value(value) -> str:
    """Render a submitted value for a plain-text email."""
    if isinstance(value, dict):
        # Upload descriptor
        return value.get('url') or value.get('name') or ''
    if isinstance(value, (list, tuple)):
        return ', '.join(format_value(v) for v in value)
    return '' if value is None else str(value)


def parse_recipients(value) -> list:
    if isinstance(value, (list, tuple)):
        candidates = value
    else:
        candidates = str(value or '').split(',')
    return [r.strip() for r in candidates if is_valid_email(r.strip())]


def build_notification(form: dict, submission_data: dict, now: datetime = None):
    """Return (subject, plain text body) for the admin notification."""
    title = form.get('title', '')
    subject = f'New submission from {title}'
    lines = [f'You have received a new form submission from {title}:', '']
    for key, value in submission_data.items():
        if key in TRANSPORT_KEYS:
            continue
        lines.append(f'{humanize_key(key)}: {format_value(value)}')
    stamp = format_date(_now(now), with_time=True)
    lines.extend(['', f'Submitted on: {stamp}'])
    return subject, '\n'.join(lines)


def build_auto_response(form: dict, form_settings: dict, now: datetime = None):
    """Return (subject, html body) for the auto-responder."""
    subject = (form_settings.get('auto_responder_subject') or '').strip() or DEFAULT_AUTO_RESPONDER_SUBJECT
    message = form_settings.get('auto_responder_message') or DEFAULT_AUTO_RESPONDER_MESSAGE
    replacements = {
        '{form_title}': html.escape(form.get('title', '')),
        '{site_name}': html.escape(config.SITE_NAME),
        '{date}': format_date(_now(now)),
    }
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return subject, message


def send_notification(form: dict, submission_data: dict, form_settings: dict):
    recipients = parse_recipients(form_settings.get('notification_email'))
    if not recipients:
        print(f"Notifications: No valid notification email for form {form.get('id')}")
        return False, 'No valid notification email'

    subject, body = build_notification(form, submission_data)
    reply_to = submission_data.get('email') if is_valid_email(submission_data.get('email', '')) else None
    return send_email(
        recipients,
        subject,
        text_body=body,
        from_email=form_settings.get('from_email', ''),
        from_name=form_settings.get('from_name', ''),
        reply_to=reply_to,
    )


def send_auto_responder(form: dict, submission_data: dict, form_settings: dict):
    email = submission_data.get('email', '')
    if not is_valid_email(email):
        return False, 'No valid submitter email'

    subject, body = build_auto_response(form, form_settings)
    return send_email(
        email.strip(),
        subject,
        html_body=body,
        from_email=form_settings.get('from_email', ''),
        from_name=form_settings.get('from_name', ''),
    )
