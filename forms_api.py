"""
Connect2Form Forms API
JSON CRUD for forms and read access to their submissions
"""

from flask import Blueprint, jsonify, request

from auth import api_key_required
from services import get_forms

forms_api_bp = Blueprint('forms_api', __name__, url_prefix='/api/forms')

EDITABLE_COLUMNS = ('title', 'fields', 'settings', 'status')


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _validate_form_payload(body: dict, partial: bool = False):
    """Return an error message for a malformed create/update body, else None."""
    if not partial or 'title' in body:
        title = body.get('title')
        if not isinstance(title, str) or not title.strip():
            return 'Title is required'
    if 'fields' in body:
        fields = body['fields']
        if not isinstance(fields, list) or not all(isinstance(f, dict) for f in fields):
            return 'Fields must be a list of objects'
        names = [f.get('name') for f in fields if f.get('name')]
        if len(names) != len(set(names)):
            return 'Field names must be unique'
    if 'settings' in body and not isinstance(body['settings'], dict):
        return 'Settings must be an object'
    if 'status' in body and body['status'] not in ('active', 'inactive'):
        return 'Status must be active or inactive'
    return None


@forms_api_bp.route('', methods=['GET'])
@api_key_required
def list_forms():
    forms = get_forms().list_forms(status=request.args.get('status', ''))
    return jsonify({'success': True, 'forms': forms})


@forms_api_bp.route('', methods=['POST'])
@api_key_required
def create_form():
    body = _json_body()
    error = _validate_form_payload(body)
    if error:
        return jsonify({'success': False, 'error': error}), 400

    form = get_forms().create_form(
        title=body['title'].strip(),
        fields=body.get('fields', []),
        settings=body.get('settings', {}),
        status=body.get('status', 'active'),
    )
    if not form:
        return jsonify({'success': False, 'error': 'Failed to create form'}), 500
    return jsonify({'success': True, 'form': form}), 201


@forms_api_bp.route('/<int:form_id>', methods=['GET'])
@api_key_required
def get_form(form_id):
    form = get_forms().get_form(form_id)
    if not form:
        return jsonify({'success': False, 'error': 'Form not found'}), 404
    return jsonify({'success': True, 'form': form})


@forms_api_bp.route('/<int:form_id>', methods=['PUT', 'PATCH'])
@api_key_required
def update_form(form_id):
    body = _json_body()
    error = _validate_form_payload(body, partial=True)
    if error:
        return jsonify({'success': False, 'error': error}), 400

    forms = get_forms()
    if not forms.get_form(form_id):
        return jsonify({'success': False, 'error': 'Form not found'}), 404

    changes = {k: v for k, v in body.items() if k in EDITABLE_COLUMNS}
    form = forms.update_form(form_id, **changes)
    if not form:
        return jsonify({'success': False, 'error': 'Failed to update form'}), 500
    return jsonify({'success': True, 'form': form})


@forms_api_bp.route('/<int:form_id>', methods=['DELETE'])
@api_key_required
def delete_form(form_id):
    if not get_forms().delete_form(form_id):
        return jsonify({'success': False, 'error': 'Failed to delete form'}), 500
    return jsonify({'success': True})


@forms_api_bp.route('/<int:form_id>/submissions', methods=['GET'])
@api_key_required
def list_submissions(form_id):
    limit = max(min(request.args.get('limit', 50, type=int), 500), 1)
    offset = max(request.args.get('offset', 0, type=int), 0)
    forms = get_forms()
    return jsonify({
        'success': True,
        'total': forms.count_submissions(form_id),
        'submissions': forms.get_submissions(form_id, limit=limit, offset=offset),
    })


@forms_api_bp.route('/submissions/<int:submission_id>', methods=['DELETE'])
@api_key_required
def delete_submission(submission_id):
    if not get_forms().delete_submission(submission_id):
        return jsonify({'success': False, 'error': 'Failed to delete submission'}), 500
    return jsonify({'success': True})
