"""
Mailchimp Connector

Subscribes (or updates) form submitters in a Mailchimp audience.
Uses the Marketing API v3 with HTTP Basic auth; the datacenter is the
suffix of the API key (e.g. xxxx-us21 -> us21).
"""

import hashlib
import re
import requests
from crm_connectors.base import BaseCRMConnector, CRMContact, CRMResult
from crm_connectors.field_mapping import map_fields, unwrap_fields
from crm_connectors.registry import register_connector

# Default timeout for all API calls (seconds)
REQUEST_TIMEOUT = 30

API_KEY_PATTERN = re.compile(r'^[a-f0-9]{32}-[a-z0-9]+$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

# Submission field -> merge field, used when a form has no explicit mapping
FALLBACK_FIELD_MAP = {
    'email': 'EMAIL',
    'email_address': 'EMAIL',
    'first_name': 'FNAME',
    'firstname': 'FNAME',
    'fname': 'FNAME',
    'last_name': 'LNAME',
    'lastname': 'LNAME',
    'lname': 'LNAME',
    'name': 'FNAME',
}

EMAIL_KEYS = ('email_address', 'EMAIL', 'email', 'Email', 'EMAIL_ADDRESS')


def extract_datacenter(api_key: str) -> str:
    if not api_key or '-' not in api_key:
        return ''
    return api_key.rsplit('-', 1)[1]


def subscriber_hash(email: str) -> str:
    return hashlib.md5(email.strip().lower().encode('utf-8')).hexdigest()


class MailchimpConnector(BaseCRMConnector):

    PROVIDER = 'mailchimp'
    CREDENTIAL_KEY = 'api_key'

    PATH_PING = '/ping'
    PATH_ROOT = '/'
    PATH_LISTS = '/lists'
    PATH_MEMBER = '/lists/{audience_id}/members/{member_hash}'

    def __init__(self, api_key: str = '', api_base_url: str = '',
                 access_token: str = '', settings: dict = None):
        super().__init__(api_key, api_base_url, access_token, settings)
        self.datacenter = extract_datacenter(api_key)
        default_base = f'https://{self.datacenter}.api.mailchimp.com/3.0'
        self.base_url = (api_base_url or default_base).rstrip('/')

    def _url(self, path: str, **kwargs) -> str:
        return self.base_url + path.format(**kwargs)

    def _request(self, method: str, path: str, json_data: dict = None,
                 params: dict = None, **path_kwargs) -> requests.Response:
        return requests.request(
            method,
            self._url(path, **path_kwargs),
            auth=('user', self.api_key),
            headers={'Content-Type': 'application/json', 'Accept': 'application/json'},
            json=json_data,
            params=params,
            timeout=REQUEST_TIMEOUT,
        )

    @staticmethod
    def _error_detail(resp: requests.Response, default: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            return default
        if not isinstance(body, dict):
            return default
        return body.get('detail') or body.get('title') or default

    # ======================================================
    # Connection
    # ======================================================

    def test_connection(self) -> CRMResult:
        """Validate the key format, ping the API, then read account details."""
        if not self.api_key:
            return CRMResult(success=False, message='API key is required')
        if not API_KEY_PATTERN.match(self.api_key):
            return CRMResult(
                success=False,
                message='Invalid API key format. Expected format: xxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx-xxx',
            )

        try:
            resp = self._request('GET', self.PATH_PING)
            if resp.status_code == 401:
                return CRMResult(success=False, message='Invalid API key. Please check your Mailchimp API key.')
            if resp.status_code == 403:
                return CRMResult(success=False, message='API key does not have sufficient permissions.')
            if resp.status_code == 404:
                return CRMResult(success=False, message='Mailchimp API endpoint not found. Check your datacenter.')
            if resp.status_code >= 400:
                return CRMResult(success=False, message=self._error_detail(resp, 'Authentication failed'))

            account = self._request('GET', self.PATH_ROOT)
            if account.status_code != 200:
                return CRMResult(
                    success=False,
                    message=self._error_detail(account, 'Failed to get account information'),
                )
            info = account.json()
            return CRMResult(
                success=True,
                message=f"Connected to Mailchimp as {info.get('account_name', 'account')}",
                data={
                    'account_name': info.get('account_name', ''),
                    'email': info.get('email', ''),
                    'total_subscribers': info.get('total_subscribers', 0),
                    'datacenter': self.datacenter,
                },
            )
        except requests.ConnectionError:
            return CRMResult(success=False, message=f'Cannot reach Mailchimp at {self.base_url}')
        except requests.Timeout:
            return CRMResult(success=False, message='Mailchimp request timed out')
        except Exception as e:
            return CRMResult(success=False, message=f'Connection error: {str(e)}')

    def get_audiences(self) -> CRMResult:
        """List the account's audiences (lists) for form setup."""
        try:
            resp = self._request('GET', self.PATH_LISTS, params={'count': 100})
            if resp.status_code != 200:
                return CRMResult(success=False, message=f'Audience fetch failed: HTTP {resp.status_code}')
            lists = resp.json().get('lists', [])
            audiences = [
                {
                    'id': item.get('id', ''),
                    'name': item.get('name', ''),
                    'member_count': (item.get('stats') or {}).get('member_count', 0),
                }
                for item in lists
            ]
            return CRMResult(success=True, message=f'Found {len(audiences)} audience(s)',
                             data={'audiences': audiences})
        except Exception as e:
            return CRMResult(success=False, message=f'Audience fetch failed: {str(e)}')

    # ======================================================
    # Submission processing
    # ======================================================

    def map_submission(self, form_data: dict, form_settings: dict) -> dict:
        field_data = unwrap_fields(form_data)
        mapped = map_fields(field_data, form_settings.get('field_mapping'), FALLBACK_FIELD_MAP)

        if not form_settings.get('field_mapping'):
            # Loose fallback: any key that looks like an email or a name
            if 'EMAIL' not in mapped:
                for key, value in field_data.items():
                    if 'email' in key.lower() and isinstance(value, str) and value.strip():
                        mapped['EMAIL'] = value
                        break
            if 'FNAME' not in mapped:
                for key, value in field_data.items():
                    lowered = key.lower()
                    if ('first' in lowered or 'name' in lowered) and isinstance(value, str) and value.strip():
                        mapped['FNAME'] = value
                        break
        return mapped

    def build_member_payload(self, mapped: dict, form_settings: dict) -> dict:
        email = next((mapped[k] for k in EMAIL_KEYS if mapped.get(k)), '')
        status = 'pending' if form_settings.get('double_optin', True) else 'subscribed'
        payload = {
            'email_address': email,
            'status_if_new': status,
            'status': status,
        }

        merge_fields = {k: v for k, v in mapped.items() if k not in EMAIL_KEYS and v}
        if merge_fields:
            payload['merge_fields'] = merge_fields

        tags = form_settings.get('tags') or ''
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(',')]
        tags = [t for t in tags if t]
        if tags:
            payload['tags'] = tags
        return payload

    def process_submission(self, submission_id: int, form_data: dict,
                           form_settings: dict) -> CRMResult:
        """Upsert the submitter into the configured audience."""
        if not self.api_key:
            return CRMResult(success=False, message='Mailchimp not configured')

        audience_id = form_settings.get('audience_id', '')
        if not audience_id:
            return CRMResult(success=False, message='Audience ID not specified')

        mapped = self.map_submission(form_data, form_settings)
        payload = self.build_member_payload(mapped, form_settings)
        email = payload['email_address']
        if not email or not EMAIL_PATTERN.match(email):
            return CRMResult(success=False, message='No valid email address found in form submission')

        try:
            resp = self._request(
                'PUT',
                self.PATH_MEMBER,
                json_data=payload,
                audience_id=audience_id,
                member_hash=subscriber_hash(email),
            )
            if resp.status_code in (200, 201):
                member = resp.json()
                return CRMResult(
                    success=True,
                    message='Successfully subscribed to Mailchimp!',
                    data={'member_id': member.get('id'), 'status': member.get('status')},
                    contact=CRMContact(
                        id=str(member.get('id', '')),
                        name=(payload.get('merge_fields') or {}).get('FNAME', ''),
                        email=email,
                        raw_data=member,
                    ),
                )
            return CRMResult(
                success=False,
                message=self._error_detail(resp, f'Failed to subscribe: HTTP {resp.status_code}'),
                data={'status_code': resp.status_code},
            )
        except Exception as e:
            return CRMResult(success=False, message=f'Subscribe failed: {str(e)}')


# Auto-register with the connector registry
register_connector('mailchimp', MailchimpConnector)
