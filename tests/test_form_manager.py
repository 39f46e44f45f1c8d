"""Tests for form_manager.py helpers and CRUD."""

from unittest.mock import MagicMock

import pytest

from form_manager import FormManager, normalize_form, normalize_submission


@pytest.fixture
def client():
    return MagicMock()


def test_normalize_form_decodes_json_text():
    form = normalize_form({'id': 1, 'fields': '[{"name": "email"}]', 'settings': '{"a": 1}'})
    assert form['fields'] == [{'name': 'email'}]
    assert form['settings'] == {'a': 1}


def test_normalize_form_bad_json_falls_back():
    form = normalize_form({'id': 1, 'fields': 'not json', 'settings': '[1, 2]'})
    assert form['fields'] == []
    assert form['settings'] == {}
    assert normalize_form(None) is None


def test_normalize_submission():
    assert normalize_submission({'id': 2, 'data': '{"email": "a@b.co"}'})['data'] == {'email': 'a@b.co'}


def test_requires_credentials(monkeypatch):
    monkeypatch.setattr('config.SUPABASE_URL', '')
    with pytest.raises(ValueError):
        FormManager()


def test_get_form(client):
    client.table.return_value.select.return_value.eq.return_value.limit.return_value \
        .execute.return_value.data = [{'id': 7, 'title': 'Contact', 'fields': [], 'settings': None}]

    form = FormManager(client).get_form(7)
    assert form == {'id': 7, 'title': 'Contact', 'fields': [], 'settings': {}}
    client.table.assert_called_with('forms')


def test_get_form_missing_or_error(client):
    chain = client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute
    chain.return_value.data = []
    assert FormManager(client).get_form(7) is None

    chain.side_effect = Exception('db down')
    assert FormManager(client).get_form(7) is None


def test_list_forms_by_status(client):
    query = client.table.return_value.select.return_value
    query.eq.return_value.order.return_value.execute.return_value.data = [{'id': 1, 'fields': [], 'settings': {}}]

    forms = FormManager(client).list_forms(status='active')
    assert [f['id'] for f in forms] == [1]
    query.eq.assert_called_with('status', 'active')


def test_create_form(client):
    client.table.return_value.insert.return_value.execute.return_value.data = [
        {'id': 9, 'title': 'New', 'fields': [], 'settings': {}, 'status': 'active'}]

    form = FormManager(client).create_form('New')
    assert form['id'] == 9
    row = client.table.return_value.insert.call_args[0][0]
    assert row['fields'] == []
    assert row['status'] == 'active'
    assert row['created_at'] == row['updated_at']


def test_update_form_ignores_unknown_columns(client):
    table = client.table.return_value
    table.update.return_value.eq.return_value.execute.return_value.data = [{'id': 9, 'title': 'Renamed'}]

    form = FormManager(client).update_form(9, title='Renamed', id=100)
    assert form['title'] == 'Renamed'
    changes = table.update.call_args[0][0]
    assert 'id' not in changes
    assert changes['title'] == 'Renamed'
    table.update.return_value.eq.assert_called_with('id', 9)


def test_delete_form_removes_submissions_first(client):
    assert FormManager(client).delete_form(9) is True
    tables = [c[0][0] for c in client.table.call_args_list]
    assert tables == ['submissions', 'forms']


def test_insert_submission(client):
    client.table.return_value.insert.return_value.execute.return_value.data = [{'id': 55}]

    submission_id = FormManager(client).insert_submission(7, {'email': 'a@b.co'}, '203.0.113.9', 'UA' * 200)
    assert submission_id == 55
    row = client.table.return_value.insert.call_args[0][0]
    assert row['form_id'] == 7
    assert row['ip_address'] == '203.0.113.9'
    assert len(row['user_agent']) == 255


def test_insert_submission_failure(client):
    client.table.return_value.insert.return_value.execute.side_effect = Exception('constraint')
    assert FormManager(client).insert_submission(7, {}) is None


def test_get_submissions_pages_with_range(client):
    chain = client.table.return_value.select.return_value.eq.return_value.order.return_value
    chain.range.return_value.execute.return_value.data = [{'id': 1, 'data': '{}'}]

    rows = FormManager(client).get_submissions(7, limit=20, offset=40)
    assert rows == [{'id': 1, 'data': {}}]
    chain.range.assert_called_with(40, 59)


def test_count_submissions(client):
    client.table.return_value.select.return_value.eq.return_value.execute.return_value.count = 12
    assert FormManager(client).count_submissions(7) == 12
    client.table.return_value.select.assert_called_with('id', count='exact')
