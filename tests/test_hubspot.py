"""Tests for the HubSpot connector."""

import json
from unittest.mock import patch

from crm_connectors.hubspot import HubSpotConnector

TOKEN = 'pat-na1-test'


def connector(**settings):
    return HubSpotConnector(access_token=TOKEN, settings=settings)


def test_test_connection_statuses(fake_response):
    with patch('requests.get', return_value=fake_response(200, {'results': []})) as mock_get:
        assert connector(portal_id='123').test_connection().success is True
    assert mock_get.call_args[0][0] == 'https://api.hubapi.com/crm/v3/objects/contacts'
    assert mock_get.call_args[1]['headers']['Authorization'] == f'Bearer {TOKEN}'

    with patch('requests.get', return_value=fake_response(401, {'message': 'bad'})):
        assert 'Invalid access token' in connector().test_connection().message

    with patch('requests.get', return_value=fake_response(500, {'message': 'boom'})):
        assert connector().test_connection().message == 'API Error (500): boom'


def test_test_connection_requires_token():
    assert HubSpotConnector().test_connection().message == 'Access token is required'


def test_contact_created_when_not_found(fake_response):
    search = fake_response(200, {'results': []})
    created = fake_response(201, {'id': '901', 'properties': {'email': 'ada@example.com', 'firstname': 'Ada'}})
    form_data = {'fields': {'email': 'ada@example.com', 'first_name': 'Ada', 'message': 'hi'}}

    with patch('requests.post', side_effect=[search, created]) as mock_post:
        result = connector().process_submission(1, form_data, {})

    assert result.success is True
    assert result.contact.id == '901'
    assert result.data['contact']['data'] == {'contact_id': '901', 'action': 'created'}
    search_call, create_call = mock_post.call_args_list
    assert search_call[0][0].endswith('/crm/v3/objects/contacts/search')
    assert search_call[1]['json']['filterGroups'][0]['filters'][0]['value'] == 'ada@example.com'
    assert create_call[0][0] == 'https://api.hubapi.com/crm/v3/objects/contacts'
    assert create_call[1]['json'] == {'properties': {'email': 'ada@example.com', 'firstname': 'Ada'}}


def test_contact_updated_when_found(fake_response):
    search = fake_response(200, {'results': [{'id': '55'}]})
    updated = fake_response(200, {'id': '55', 'properties': {'email': 'ada@example.com'}})

    with patch('requests.post', return_value=search), \
            patch('requests.patch', return_value=updated) as mock_patch:
        result = connector().process_submission(
            1, {'fields': {'email': 'ada@example.com'}}, {'field_mapping': {'email': 'email'}})

    assert result.success is True
    assert mock_patch.call_args[0][0] == 'https://api.hubapi.com/crm/v3/objects/contacts/55'


def test_contact_requires_email():
    result = connector().process_submission(1, {'fields': {'first_name': 'Ada'}}, {})
    assert result.success is False
    assert result.message == 'contact: Email is required for contact creation'


def test_deal_and_workflow_after_contact(fake_response):
    settings = {
        'deal_enabled': True,
        'deal_pipeline': 'default',
        'deal_stage': 'appointmentscheduled',
        'workflow_enabled': True,
        'workflow_id': '77',
    }
    responses = [
        fake_response(200, {'results': []}),
        fake_response(201, {'id': '1'}),
        fake_response(201, {'id': 'd1'}),
        fake_response(204),
    ]
    with patch('requests.post', side_effect=responses) as mock_post:
        result = connector().process_submission(1, {'fields': {'email': 'ada@example.com'}}, settings)

    assert result.success is True
    assert result.deal.id == 'd1'
    deal_call = mock_post.call_args_list[2]
    assert deal_call[1]['json']['properties'] == {
        'dealname': 'Form Submission Deal',
        'amount': '0',
        'pipeline': 'default',
        'dealstage': 'appointmentscheduled',
    }
    workflow_call = mock_post.call_args_list[3]
    assert workflow_call[0][0] == \
        'https://api.hubapi.com/automation/v2/workflows/77/enrollments/contacts/ada@example.com'


def test_partial_failure_still_succeeds(fake_response):
    settings = {'deal_enabled': True}  # missing pipeline and stage
    responses = [fake_response(200, {'results': []}), fake_response(201, {'id': '1'})]
    with patch('requests.post', side_effect=responses):
        result = connector().process_submission(1, {'fields': {'email': 'ada@example.com'}}, settings)

    assert result.success is True
    assert 'deal: Deal pipeline and stage are required' in result.message


def test_all_actions_failing(fake_response):
    with patch('requests.post', return_value=fake_response(400, {'message': 'Property values were not valid'})):
        result = connector().process_submission(1, {'fields': {'email': 'ada@example.com'}}, {})
    assert result.success is False
    assert result.message == 'contact: Contact creation failed: Property values were not valid'


def test_deal_update(fake_response):
    settings = {'object_type': 'none', 'deal_enabled': True, 'deal_update_enabled': True, 'deal_id': '42'}
    with patch('requests.patch', return_value=fake_response(200, {'id': '42'})) as mock_patch:
        result = connector().process_submission(1, {'fields': {'amount': '100'}},
                                                dict(settings, field_mapping={'amount': 'amount'}))
    assert result.success is True
    assert mock_patch.call_args[0][0] == 'https://api.hubapi.com/crm/v3/objects/deals/42'
    assert mock_patch.call_args[1]['json'] == {'properties': {'amount': '100'}}


def test_custom_objects(fake_response):
    settings = {
        'object_type': 'none',
        'custom_objects_enabled': True,
        'custom_objects_config': [
            {'object_name': 'p_vehicles', 'enabled': True, 'field_mapping': {'make': 'make', 'model': 'model'}},
            {'object_name': 'p_skipped', 'enabled': False, 'field_mapping': {'make': 'make'}},
            {'object_name': 'p_pets', 'enabled': True, 'action': 'update', 'object_id': '9',
             'field_mapping': {'pet': 'name'}},
        ],
    }
    fields = {'make': 'Volvo', 'model': 'XC40', 'pet': 'Rex'}
    with patch('requests.post', return_value=fake_response(201, {'id': 'v1'})) as mock_post, \
            patch('requests.patch', return_value=fake_response(200, {'id': '9'})) as mock_patch:
        result = connector().process_submission(1, {'fields': fields}, settings)

    assert result.success is True
    assert mock_post.call_args[0][0] == 'https://api.hubapi.com/crm/v3/objects/p_vehicles'
    assert mock_post.call_args[1]['json'] == {'properties': {'make': 'Volvo', 'model': 'XC40'}}
    assert mock_patch.call_args[0][0] == 'https://api.hubapi.com/crm/v3/objects/p_pets/9'
    assert set(result.data['custom_objects']['data']) == {'p_vehicles', 'p_pets'}


def test_forms_api_submission(fake_response):
    settings = {
        'object_type': 'forms',
        'hubspot_form_id': 'form-guid',
        'form_field_mapping': {'email': 'email', 'topics': 'interests'},
    }
    form_data = {
        'fields': {'email': 'ada@example.com', 'topics': ['a', 'b']},
        'context': {'page_url': 'https://site.test/contact', 'ip_address': '203.0.113.1'},
    }
    with patch('requests.post', return_value=fake_response(204)) as mock_post:
        result = connector(portal_id='999').process_submission(1, form_data, settings)

    assert result.success is True
    assert mock_post.call_args[0][0] == \
        'https://api.hsforms.com/submissions/v3/integration/submit/999/form-guid'
    body = json.loads(mock_post.call_args[1]['data'])
    assert body['fields'] == [{'name': 'email', 'value': 'ada@example.com'},
                              {'name': 'interests', 'value': 'a, b'}]
    assert body['context']['pageUri'] == 'https://site.test/contact'
    assert 'Authorization' not in mock_post.call_args[1]['headers']


def test_forms_api_requires_portal_and_form():
    settings = {'object_type': 'forms', 'hubspot_form_id': 'g'}
    assert connector().process_submission(1, {'fields': {}}, settings).message == 'HubSpot portal ID not configured'
    settings = {'object_type': 'forms'}
    assert connector(portal_id='1').process_submission(1, {'fields': {}}, settings).message == 'HubSpot form not selected'
