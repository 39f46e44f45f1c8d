"""
Submission Handler
Validate a posted form, persist it, then fan out to notifications and
integrations. Integration and email failures are logged and never change
the response the submitter gets.
"""

from dataclasses import dataclass
from typing import Optional

import config
import notifications
import uploads
import validation
from form_manager import FormManager
from integration_manager import IntegrationManager
from rate_limiter import RateLimiter

DEFAULT_SUCCESS_MESSAGE = 'Form submitted successfully!'

# Posted by the form transport; not stored with the submission
STRIPPED_KEYS = ('nonce', 'action', 'website', 'g-recaptcha-response')


@dataclass
class SubmissionResult:
    success: bool
    message: str
    submission_id: Optional[int] = None
    status_code: int = 200

    def to_response(self) -> dict:
        if self.success:
            return {'success': True, 'data': {'message': self.message, 'submission_id': self.submission_id}}
        return {'success': False, 'data': self.message}


def _error(message: str, status_code: int = 400) -> SubmissionResult:
    return SubmissionResult(success=False, message=message, status_code=status_code)


def _parse_form_id(raw) -> int:
    try:
        form_id = int(raw)
    except (TypeError, ValueError):
        return 0
    return form_id if form_id > 0 else 0


class SubmissionHandler:
    def __init__(self, forms: FormManager = None, integrations: IntegrationManager = None,
                 rate_limiter: RateLimiter = None):
        self.forms = forms or FormManager()
        self.integrations = integrations or IntegrationManager(self.forms.supabase)
        self.rate_limiter = rate_limiter or RateLimiter()

    def handle_submission(self, form_id, data: dict, files=None, client_ip: str = '',
                          user_agent: str = '') -> SubmissionResult:
        """Run the full submission pipeline and return the response to send."""
        data = dict(data or {})

        if not self.rate_limiter.check(client_ip or 'unknown'):
            return _error('Too many submissions. Please wait a moment before trying again.', 429)

        error = validation.check_honeypot(data) or validation.check_timestamp(data)
        if error:
            return _error(error)

        form_id = _parse_form_id(form_id if form_id is not None else data.get('form_id'))
        if not form_id:
            return _error('Invalid form ID')

        form = self.forms.get_form(form_id)
        if not form or form.get('status') == 'inactive':
            return _error('Form not found', 404)
        form_settings = form.get('settings') or {}

        # Required file inputs count as filled when a file was sent
        for name, storage in (files or {}).items():
            if storage is not None and getattr(storage, 'filename', ''):
                data.setdefault(name, storage.filename)

        error = validation.validate_submission(
            form.get('fields') or [], data,
            recaptcha_secret=form_settings.get('recaptcha_secret') or config.RECAPTCHA_SECRET_KEY,
            client_ip=client_ip,
        )
        if error:
            return _error(error)

        uploaded, error = uploads.save_uploads(files)
        if error:
            return _error(error)

        submission_data = {k: v for k, v in data.items() if k not in STRIPPED_KEYS}
        submission_data.update(uploaded)

        submission_id = self.forms.insert_submission(form_id, submission_data, client_ip, user_agent)
        if not submission_id:
            uploads.discard_uploads(uploaded)
            return _error('Failed to save submission', 500)
        print(f"Submission: Saved submission {submission_id} for form {form_id}")

        self.dispatch(form, submission_id, submission_data, client_ip)

        message = form_settings.get('success_message') or DEFAULT_SUCCESS_MESSAGE
        return SubmissionResult(success=True, message=message, submission_id=submission_id)

    def dispatch(self, form: dict, submission_id: int, submission_data: dict, client_ip: str = ''):
        """Integrations first, then emails. Each step is isolated from the others."""
        form_settings = form.get('settings') or {}
        form_data = {
            'form_id': form['id'],
            'fields': submission_data,
            'context': {
                'page_url': submission_data.get('page_url', ''),
                'page_title': submission_data.get('page_title', ''),
                'ip_address': client_ip,
                'hutk': submission_data.get('hubspotutk', ''),
            },
        }

        try:
            self.integrations.process_integrations(submission_id, form['id'], form_data, form_settings)
        except Exception as e:
            print(f"Submission: Integrations failed for submission {submission_id}: {e}")

        if form_settings.get('email_notifications') and form_settings.get('notification_email'):
            try:
                notifications.send_notification(form, submission_data, form_settings)
            except Exception as e:
                print(f"Submission: Notification failed for submission {submission_id}: {e}")

        if form_settings.get('auto_responder') and submission_data.get('email'):
            try:
                notifications.send_auto_responder(form, submission_data, form_settings)
            except Exception as e:
                print(f"Submission: Auto-responder failed for submission {submission_id}: {e}")
