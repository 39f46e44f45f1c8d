"""
Connector Registry
Provider name -> connector class. Each connector module registers itself on import.
"""

from typing import Dict, List, Type
from crm_connectors.base import BaseCRMConnector

_REGISTRY: Dict[str, Type[BaseCRMConnector]] = {}


def register_connector(provider: str, connector_class: Type[BaseCRMConnector]):
    _REGISTRY[provider.lower()] = connector_class


def get_connector_class(provider: str) -> Type[BaseCRMConnector]:
    """Look up a connector class. Raises ValueError for unregistered providers."""
    provider = provider.lower()
    if provider not in _REGISTRY:
        raise ValueError(f"Unknown integration provider: '{provider}'. Available: {list_providers()}")
    return _REGISTRY[provider]


def get_connector(provider: str, **kwargs) -> BaseCRMConnector:
    """Instantiate the connector for provider with the given credentials and settings."""
    return get_connector_class(provider)(**kwargs)


def list_providers() -> List[str]:
    return sorted(_REGISTRY)
