"""
Integration Manager - global credentials, per-form settings and dispatch
Supabase client, graceful degradation: errors are printed and an empty value returned.

Integrations run one after another, once per submission. There is no retry
or queue; each outcome is printed and recorded in integration_logs.
"""

import json
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from supabase import create_client, Client
import pytz

import config
from crm_connectors import CRMResult, get_connector, get_connector_class, list_providers

# Legacy flat form-settings keys -> per-provider settings
LEGACY_MAILCHIMP_KEYS = {
    'mailchimp_api_key': 'api_key',
    'mailchimp_list_id': 'audience_id',
    'mailchimp_double_optin': 'double_optin',
}
LEGACY_HUBSPOT_KEYS = {
    'hubspot_api_key': 'access_token',
    'hubspot_portal_id': 'portal_id',
}
LEGACY_HUBSPOT_FIELDS = {
    'hubspot_email_field': 'email',
    'hubspot_firstname_field': 'firstname',
    'hubspot_lastname_field': 'lastname',
    'hubspot_phone_field': 'phone',
    'hubspot_company_field': 'company',
}

# Keys inside global settings that are never returned unmasked
SECRET_KEYS = ('api_key', 'access_token', 'client_secret')

LOG_SNIPPET_CHARS = 1024


def mask_secret(value: str) -> str:
    if not value:
        return ''
    return '*' * max(len(value) - 4, 4) + value[-4:]


def legacy_integrations(form_settings: dict) -> Dict[str, dict]:
    """Translate the original flat enable_* keys into provider settings.

    Legacy entries carry their credentials inline, and those take precedence
    over the global credentials.
    """
    resolved = {}

    if form_settings.get('enable_mailchimp'):
        mc = {'enabled': True, 'legacy': True}
        for old, new in LEGACY_MAILCHIMP_KEYS.items():
            if old in form_settings:
                mc[new] = form_settings[old]
        mapping = {}
        if form_settings.get('mailchimp_email_field'):
            mapping[form_settings['mailchimp_email_field']] = 'EMAIL'
        if form_settings.get('mailchimp_name_field'):
            mapping[form_settings['mailchimp_name_field']] = 'FNAME'
        if mapping:
            mc['field_mapping'] = mapping
        resolved['mailchimp'] = mc

    if form_settings.get('enable_hubspot'):
        hs = {'enabled': True, 'legacy': True, 'object_type': 'contacts'}
        for old, new in LEGACY_HUBSPOT_KEYS.items():
            if old in form_settings:
                hs[new] = form_settings[old]
        mapping = {
            form_settings[old]: prop
            for old, prop in LEGACY_HUBSPOT_FIELDS.items()
            if form_settings.get(old)
        }
        if mapping:
            hs['field_mapping'] = mapping
        resolved['hubspot'] = hs

    return resolved


def resolve_form_integrations(form_settings: dict) -> Dict[str, dict]:
    """Return {provider: settings} for every integration enabled on a form."""
    form_settings = form_settings or {}
    resolved = legacy_integrations(form_settings)

    for provider, settings in (form_settings.get('integrations') or {}).items():
        if isinstance(settings, dict) and settings.get('enabled'):
            resolved[provider.lower()] = settings
    return resolved


class IntegrationManager:
    def __init__(self, client: Client = None):
        if client is None:
            if not config.SUPABASE_URL or not config.SUPABASE_KEY:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
            client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
        self.supabase: Client = client

    # ========================================
    # GLOBAL SETTINGS
    # ========================================

    def get_global_settings(self, integration_id: str) -> dict:
        """Get the credentials blob for one integration ({} when not configured)."""
        try:
            result = self.supabase.table('integration_settings') \
                .select('settings') \
                .eq('integration_id', integration_id) \
                .limit(1) \
                .execute()
            if not result.data:
                return {}
            settings = result.data[0].get('settings') or {}
            if isinstance(settings, str):
                settings = json.loads(settings)
            return settings
        except Exception as e:
            print(f"Integrations: Error fetching {integration_id} settings: {e}")
            return {}

    def get_masked_settings(self, integration_id: str) -> dict:
        settings = dict(self.get_global_settings(integration_id))
        for key in SECRET_KEYS:
            if settings.get(key):
                settings[key] = mask_secret(settings[key])
        return settings

    def save_global_settings(self, integration_id: str, settings: dict) -> bool:
        """Create or overwrite the credentials blob for one integration."""
        try:
            data = {
                'integration_id': integration_id,
                'settings': settings,
                'updated_at': datetime.now(pytz.UTC).isoformat(),
            }
            existing = self.supabase.table('integration_settings') \
                .select('id') \
                .eq('integration_id', integration_id) \
                .execute()

            if existing.data:
                self.supabase.table('integration_settings') \
                    .update(data) \
                    .eq('id', existing.data[0]['id']) \
                    .execute()
            else:
                self.supabase.table('integration_settings') \
                    .insert(data) \
                    .execute()
            return True
        except Exception as e:
            print(f"Integrations: Error saving {integration_id} settings: {e}")
            return False

    def is_globally_connected(self, integration_id: str) -> bool:
        try:
            credential_key = get_connector_class(integration_id).CREDENTIAL_KEY
        except ValueError:
            return False
        return bool(self.get_global_settings(integration_id).get(credential_key))

    def connection_status(self) -> List[dict]:
        return [
            {'integration_id': provider, 'connected': self.is_globally_connected(provider)}
            for provider in list_providers()
        ]

    # ========================================
    # CONNECTORS
    # ========================================

    def build_connector(self, provider: str, credentials: dict):
        """Instantiate a connector from a credentials dict. Raises ValueError for unknown providers."""
        return get_connector(
            provider,
            api_key=credentials.get('api_key', ''),
            api_base_url=credentials.get('api_base_url', ''),
            access_token=credentials.get('access_token', ''),
            settings=credentials,
        )

    def test_connection(self, provider: str, credentials: dict) -> CRMResult:
        """Instantiate a connector and test the connection.
        Nothing is saved; this only validates the credentials.
        """
        try:
            return self.build_connector(provider, credentials).test_connection()
        except ValueError as e:
            return CRMResult(success=False, message=str(e))
        except Exception as e:
            return CRMResult(success=False, message=f'Connection test failed: {str(e)}')

    def credentials_for(self, provider: str, form_integration: dict) -> dict:
        credentials = dict(self.get_global_settings(provider))
        if form_integration.get('legacy'):
            for key in ('api_key', 'access_token', 'portal_id'):
                if form_integration.get(key):
                    credentials[key] = form_integration[key]
        return credentials

    # ========================================
    # DISPATCH (main entry point)
    # ========================================

    def process_integrations(self, submission_id: int, form_id: int, form_data: dict,
                             form_settings: dict) -> Dict[str, CRMResult]:
        """Send one submission to every integration enabled on the form.

        Never raises: each provider's failure is captured in its CRMResult
        and written to integration_logs.
        """
        results = {}
        for provider, settings in resolve_form_integrations(form_settings).items():
            try:
                connector = self.build_connector(provider, self.credentials_for(provider, settings))
                result = connector.process_submission(submission_id, form_data, settings)
            except Exception as e:
                result = CRMResult(success=False, message=f'{provider} integration failed: {str(e)}')

            status = 'success' if result.success else 'error'
            print(f"Integrations: {provider} {status} for submission {submission_id}: {result.message}")
            self.log_result(provider, form_id, submission_id, result)
            results[provider] = result
        return results

    # ========================================
    # LOGS
    # ========================================

    def log_result(self, integration_id: str, form_id: int, submission_id: Optional[int],
                   result: CRMResult) -> bool:
        try:
            self.supabase.table('integration_logs').insert({
                'form_id': form_id,
                'submission_id': submission_id,
                'integration_id': integration_id,
                'status': 'success' if result.success else 'error',
                'message': result.message[:LOG_SNIPPET_CHARS],
                'data': json.dumps(result.data, default=str)[:LOG_SNIPPET_CHARS] if result.data else None,
                'created_at': datetime.now(pytz.UTC).isoformat(),
            }).execute()
            return True
        except Exception as e:
            print(f"Integrations: Error writing log for {integration_id}: {e}")
            return False

    def get_logs(self, integration_id: str = '', form_id: int = None, limit: int = 100) -> List[dict]:
        try:
            query = self.supabase.table('integration_logs').select('*')
            if integration_id:
                query = query.eq('integration_id', integration_id)
            if form_id:
                query = query.eq('form_id', form_id)
            result = query.order('created_at', desc=True).limit(limit).execute()
            return result.data or []
        except Exception as e:
            print(f"Integrations: Error fetching logs: {e}")
            return []

    def clear_old_logs(self, days: int = None) -> bool:
        """Delete integration log rows older than the retention window."""
        days = config.LOG_RETENTION_DAYS if days is None else days
        cutoff = (datetime.now(pytz.UTC) - timedelta(days=days)).isoformat()
        try:
            self.supabase.table('integration_logs') \
                .delete() \
                .lt('created_at', cutoff) \
                .execute()
            return True
        except Exception as e:
            print(f"Integrations: Error clearing old logs: {e}")
            return False
