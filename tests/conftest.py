"""
Shared test fixtures for Connect2Form tests.
All external services (Supabase, Resend, HubSpot, Mailchimp) are mocked.
"""

import os
import sys
import pytest
from unittest.mock import MagicMock

# Ensure project root is on sys.path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set required env vars BEFORE any app imports
os.environ.setdefault('SUPABASE_URL', 'https://test.supabase.co')
os.environ.setdefault('SUPABASE_KEY', 'test-key')
os.environ.setdefault('RESEND_API_KEY', 'test-resend-key')
os.environ.setdefault('ADMIN_API_KEY', 'test-admin-key')


@pytest.fixture(autouse=True)
def mock_supabase(monkeypatch):
    """Mock the Supabase client globally so no real DB calls are made."""
    mock_client = MagicMock()

    def mock_create_client(url, key):
        return mock_client

    monkeypatch.setattr('form_manager.create_client', mock_create_client)
    monkeypatch.setattr('integration_manager.create_client', mock_create_client)
    return mock_client


@pytest.fixture
def fake_response():
    """Factory for requests.Response stand-ins."""
    def _make(status_code=200, json_data=None, text=None):
        resp = MagicMock()
        resp.status_code = status_code
        if json_data is None:
            resp.json.side_effect = ValueError('No JSON')
        else:
            resp.json.return_value = json_data
        resp.text = text if text is not None else ('' if json_data is None else str(json_data))
        return resp
    return _make


@pytest.fixture
def contact_form():
    """A typical contact form record as returned by FormManager.get_form."""
    return {
        'id': 7,
        'title': 'Contact Us',
        'status': 'active',
        'fields': [
            {'name': 'name', 'label': 'Your Name', 'type': 'text', 'required': True},
            {'name': 'email', 'label': 'Email', 'type': 'email', 'required': True},
            {'name': 'message', 'label': 'Message', 'type': 'textarea'},
        ],
        'settings': {
            'success_message': 'Thanks, we got it.',
        },
    }
