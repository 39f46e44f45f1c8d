"""
Connect2Form Email Utilities
Shared email sending via Resend API
"""

import os
import resend

import config


def format_sender(from_email: str = '', from_name: str = '') -> str:
    email = from_email or config.FROM_EMAIL
    name = from_name or config.SITE_NAME
    return f"{name} <{email}>"


def send_email(to_email, subject, html_body=None, text_body=None,
               from_email='', from_name='', reply_to=None):
    """
    Send an email via Resend API.
    to_email may be a single address or a list.
    Returns: (success: bool, error: str or None)
    """
    # Read API key at call time (not import time) so env vars are always fresh
    api_key = os.getenv('RESEND_API_KEY')
    if not api_key:
        print("RESEND_API_KEY not configured, cannot send email")
        return False, "RESEND_API_KEY not configured"

    recipients = [to_email] if isinstance(to_email, str) else list(to_email)
    if not recipients:
        return False, "No recipients"

    resend.api_key = api_key

    try:
        params = {
            "from": format_sender(from_email, from_name),
            "to": recipients,
            "subject": subject,
        }
        if html_body:
            params["html"] = html_body
        if text_body:
            params["text"] = text_body
        if reply_to:
            params["reply_to"] = reply_to
        resend.Emails.send(params)
        print(f"Email sent to {', '.join(recipients)}: {subject}")
        return True, None
    except Exception as e:
        print(f"Failed to send email to {', '.join(recipients)}: {e}")
        return False, str(e)
