"""
Base Connector - the contract every form integration implements
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CRMContact:
    """A contact or list member created/updated from a submission"""
    id: str = ''
    name: str = ''
    email: str = ''
    phone: str = ''
    company: str = ''
    raw_data: dict = field(default_factory=dict)


@dataclass
class CRMDeal:
    id: str = ''
    title: str = ''
    pipeline: str = ''
    stage: str = ''
    value: float = 0.0
    raw_data: dict = field(default_factory=dict)


@dataclass
class CRMResult:
    """Outcome of one connector call. Connectors return this instead of raising."""
    success: bool
    message: str = ''
    data: Optional[dict] = None
    contact: Optional[CRMContact] = None
    deal: Optional[CRMDeal] = None

    def to_dict(self) -> dict:
        """JSON-safe summary used in API responses and integration logs."""
        return {'success': self.success, 'message': self.message, 'data': self.data}


class BaseCRMConnector(ABC):
    """Forward stored submissions to one third-party service.

    process_submission receives the submission id, the form data
    ({'form_id': ..., 'fields': {...}, 'context': {...}}) and the form's
    settings for this provider.
    """

    PROVIDER = 'base'
    # Key in the global settings that must be set for the provider to count as connected
    CREDENTIAL_KEY = 'api_key'

    def __init__(self, api_key: str = '', api_base_url: str = '',
                 access_token: str = '', settings: dict = None):
        self.api_key = api_key
        self.api_base_url = api_base_url
        self.access_token = access_token
        self.settings = settings or {}

    @abstractmethod
    def test_connection(self) -> CRMResult:
        """Check the credentials with one cheap, read-only request."""

    @abstractmethod
    def process_submission(self, submission_id: int, form_data: dict,
                           form_settings: dict) -> CRMResult:
        """Send one stored submission to the provider."""
