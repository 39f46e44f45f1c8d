"""
Integration Connectors Package
Pluggable CRM / mailing-list integrations for Connect2Form submissions
"""

from crm_connectors.base import BaseCRMConnector, CRMContact, CRMDeal, CRMResult
from crm_connectors.registry import get_connector, get_connector_class, register_connector, list_providers
from crm_connectors.hubspot import HubSpotConnector
from crm_connectors.mailchimp import MailchimpConnector

__all__ = [
    'BaseCRMConnector', 'CRMContact', 'CRMDeal', 'CRMResult',
    'get_connector', 'get_connector_class', 'register_connector', 'list_providers',
    'HubSpotConnector', 'MailchimpConnector',
]
