"""
Connect2Form Integration Setup API
Connect HubSpot / Mailchimp accounts, test credentials and read sync logs
"""

from flask import Blueprint, jsonify, request

from auth import api_key_required
from crm_connectors import list_providers
from crm_connectors.mailchimp import MailchimpConnector
from services import get_integrations

integrations_api_bp = Blueprint('integrations_api', __name__, url_prefix='/api/integrations')


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _unknown(provider):
    return jsonify({'success': False, 'error': f'Unknown integration: {provider}'}), 404


@integrations_api_bp.route('', methods=['GET'])
@api_key_required
def list_integrations():
    """Show available providers and whether each has credentials saved"""
    return jsonify({'success': True, 'integrations': get_integrations().connection_status()})


@integrations_api_bp.route('/<provider>/settings', methods=['GET'])
@api_key_required
def get_settings(provider):
    if provider not in list_providers():
        return _unknown(provider)
    return jsonify({'success': True, 'settings': get_integrations().get_masked_settings(provider)})


@integrations_api_bp.route('/<provider>/settings', methods=['POST'])
@api_key_required
def save_settings(provider):
    """Test and save global credentials for a provider"""
    if provider not in list_providers():
        return _unknown(provider)

    credentials = {k: v.strip() if isinstance(v, str) else v for k, v in _json_body().items() if v is not None}
    mgr = get_integrations()

    # Test the connection first
    result = mgr.test_connection(provider, credentials)
    if not result.success:
        return jsonify({'success': False, 'error': f'Connection failed: {result.message}'}), 400

    if not mgr.save_global_settings(provider, credentials):
        return jsonify({'success': False, 'error': 'Failed to save settings'}), 500
    return jsonify({'success': True, 'message': f'{provider.title()} connected successfully!', 'data': result.data})


@integrations_api_bp.route('/<provider>/test', methods=['POST'])
@api_key_required
def test_connection(provider):
    """Test posted credentials, or the saved ones when none are posted"""
    if provider not in list_providers():
        return _unknown(provider)

    mgr = get_integrations()
    credentials = _json_body() or mgr.get_global_settings(provider)
    result = mgr.test_connection(provider, credentials)
    status = 200 if result.success else 400
    return jsonify({'success': result.success, 'message': result.message, 'data': result.data}), status


@integrations_api_bp.route('/mailchimp/audiences', methods=['GET'])
@api_key_required
def mailchimp_audiences():
    settings = get_integrations().get_global_settings('mailchimp')
    if not settings.get('api_key'):
        return jsonify({'success': False, 'error': 'Mailchimp not configured'}), 400

    result = MailchimpConnector(api_key=settings['api_key']).get_audiences()
    if not result.success:
        return jsonify({'success': False, 'error': result.message}), 502
    return jsonify({'success': True, 'audiences': result.data['audiences']})


@integrations_api_bp.route('/logs', methods=['GET'])
@api_key_required
def logs():
    limit = min(request.args.get('limit', 100, type=int), 500)
    entries = get_integrations().get_logs(
        integration_id=request.args.get('integration', ''),
        form_id=request.args.get('form_id', type=int),
        limit=limit,
    )
    return jsonify({'success': True, 'logs': entries})


@integrations_api_bp.route('/logs', methods=['DELETE'])
@api_key_required
def clear_logs():
    days = request.args.get('days', type=int)
    if not get_integrations().clear_old_logs(days):
        return jsonify({'success': False, 'error': 'Failed to clear logs'}), 500
    return jsonify({'success': True})
