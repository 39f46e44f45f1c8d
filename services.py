"""
Per-app service instances
Built on first use so importing the app never needs database credentials
"""

from flask import current_app

from submission_handler import SubmissionHandler


def get_handler() -> SubmissionHandler:
    handler = current_app.config.get('SUBMISSION_HANDLER')
    if handler is None:
        handler = SubmissionHandler()
        current_app.config['SUBMISSION_HANDLER'] = handler
    return handler


def get_forms():
    return get_handler().forms


def get_integrations():
    return get_handler().integrations
