"""Tests for the connector registry and shared field mapping."""

import pytest

from crm_connectors import HubSpotConnector, MailchimpConnector, get_connector, list_providers
from crm_connectors.field_mapping import map_fields, unwrap_fields


def test_builtin_providers_registered():
    assert {'hubspot', 'mailchimp'} <= set(list_providers())


def test_get_connector_is_case_insensitive():
    assert isinstance(get_connector('HubSpot', access_token='t'), HubSpotConnector)
    assert isinstance(get_connector('mailchimp', api_key='k-us1'), MailchimpConnector)


def test_unknown_provider_raises():
    with pytest.raises(ValueError, match='Unknown integration provider'):
        get_connector('salesforce')


def test_explicit_mapping_copies_only_filled_fields():
    fields = {'mail': 'ada@example.com', 'nick': '', 'tags': ['x', 'y']}
    mapping = {'mail': 'email', 'nick': 'nickname', 'tags': 'tags', 'missing': 'other', 'ignored': ''}
    assert map_fields(fields, mapping) == {'email': 'ada@example.com', 'tags': 'x, y'}


def test_fallback_map_first_alias_wins():
    fallback = {'first_name': 'firstname', 'name': 'firstname', 'email': 'email'}
    fields = {'name': 'Full Name', 'first_name': 'Ada', 'email': 'ada@example.com'}
    assert map_fields(fields, None, fallback) == {'firstname': 'Ada', 'email': 'ada@example.com'}


def test_unwrap_fields():
    assert unwrap_fields({'form_id': 1, 'fields': {'a': 1}}) == {'a': 1}
    assert unwrap_fields({'a': 1}) == {'a': 1}
