"""
HubSpot CRM Connector

Forwards submissions to HubSpot using a Private App access token.
Supported actions per form: contact upsert, deal create/update,
custom object create/update, workflow enrollment, or a submission
to a native HubSpot form via the Forms API.
"""

import json
import requests
from crm_connectors.base import BaseCRMConnector, CRMContact, CRMDeal, CRMResult
from crm_connectors.field_mapping import map_fields, unwrap_fields
from crm_connectors.registry import register_connector

# Default timeout for all API calls (seconds)
REQUEST_TIMEOUT = 30

# Submission field -> contact property, used when a form has no explicit mapping
FALLBACK_FIELD_MAP = {
    'email': 'email',
    'email_address': 'email',
    'first_name': 'firstname',
    'firstname': 'firstname',
    'name': 'firstname',
    'last_name': 'lastname',
    'lastname': 'lastname',
    'phone': 'phone',
    'company': 'company',
    'website': 'website',
}


def parse_amount(value) -> float:
    try:
        return float(str(value).replace(',', ''))
    except ValueError:
        return 0.0


class HubSpotConnector(BaseCRMConnector):

    PROVIDER = 'hubspot'
    CREDENTIAL_KEY = 'access_token'

    PATH_CONTACTS = '/crm/v3/objects/contacts'
    PATH_CONTACT = '/crm/v3/objects/contacts/{contact_id}'
    PATH_CONTACT_SEARCH = '/crm/v3/objects/contacts/search'
    PATH_DEALS = '/crm/v3/objects/deals'
    PATH_DEAL = '/crm/v3/objects/deals/{deal_id}'
    PATH_OBJECTS = '/crm/v3/objects/{object_name}'
    PATH_OBJECT = '/crm/v3/objects/{object_name}/{object_id}'
    PATH_WORKFLOW_ENROLL = '/automation/v2/workflows/{workflow_id}/enrollments/contacts/{email}'

    DEFAULT_BASE_URL = 'https://api.hubapi.com'
    FORMS_SUBMIT_URL = 'https://api.hsforms.com/submissions/v3/integration/submit/{portal_id}/{form_id}'

    def __init__(self, api_key: str = '', api_base_url: str = '',
                 access_token: str = '', settings: dict = None):
        super().__init__(api_key, api_base_url, access_token, settings)
        self.base_url = (api_base_url or self.DEFAULT_BASE_URL).rstrip('/')
        # Legacy forms stored the private app token as "api_key"
        self.token = access_token or api_key
        self.portal_id = str(self.settings.get('portal_id', '') or '')

    def _headers(self) -> dict:
        return {
            'Authorization': f'Bearer {self.token}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    def _url(self, path: str, **kwargs) -> str:
        return self.base_url + path.format(**kwargs)

    def _get(self, path: str, params: dict = None, **path_kwargs) -> requests.Response:
        return requests.get(
            self._url(path, **path_kwargs),
            headers=self._headers(),
            params=params,
            timeout=REQUEST_TIMEOUT,
        )

    def _post(self, path: str, json_data: dict = None, **path_kwargs) -> requests.Response:
        return requests.post(
            self._url(path, **path_kwargs),
            headers=self._headers(),
            json=json_data,
            timeout=REQUEST_TIMEOUT,
        )

    def _patch(self, path: str, json_data: dict = None, **path_kwargs) -> requests.Response:
        return requests.patch(
            self._url(path, **path_kwargs),
            headers=self._headers(),
            json=json_data,
            timeout=REQUEST_TIMEOUT,
        )

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text[:200] or 'Unknown error'
        if isinstance(body, dict):
            return body.get('message', 'Unknown error')
        return 'Unknown error'

    # ======================================================
    # Connection
    # ======================================================

    def test_connection(self) -> CRMResult:
        """Test the access token with a one-record contacts read."""
        if not self.token:
            return CRMResult(success=False, message='Access token is required')
        try:
            resp = self._get(self.PATH_CONTACTS, params={'limit': 1})
            if resp.status_code == 200:
                return CRMResult(
                    success=True,
                    message='Connected to HubSpot',
                    data={'portal_id': self.portal_id, 'api_version': 'v3'},
                )
            elif resp.status_code == 401:
                return CRMResult(success=False, message='Invalid access token. Please check your Private App Access Token.')
            elif resp.status_code == 403:
                return CRMResult(success=False, message='Access denied. Please check your Private App permissions.')
            else:
                return CRMResult(
                    success=False,
                    message=f'API Error ({resp.status_code}): {self._error_message(resp)}',
                )
        except requests.ConnectionError:
            return CRMResult(success=False, message=f'Cannot reach HubSpot at {self.base_url}')
        except requests.Timeout:
            return CRMResult(success=False, message='HubSpot request timed out')
        except Exception as e:
            return CRMResult(success=False, message=f'Connection error: {str(e)}')

    # ======================================================
    # Individual actions
    # ======================================================

    def find_contact_id(self, email: str) -> str:
        """Return the id of the contact with this email, or '' when none exists."""
        payload = {
            'filterGroups': [{
                'filters': [{'propertyName': 'email', 'operator': 'EQ', 'value': email}],
            }],
            'properties': ['email', 'firstname', 'lastname', 'phone'],
            'limit': 1,
        }
        resp = self._post(self.PATH_CONTACT_SEARCH, json_data=payload)
        if resp.status_code != 200:
            return ''
        results = resp.json().get('results') or []
        return str(results[0].get('id', '')) if results else ''

    def upsert_contact(self, properties: dict) -> CRMResult:
        """Update the contact matching properties['email'] or create a new one."""
        email = properties.get('email')
        if not email:
            return CRMResult(success=False, message='Email is required for contact creation')

        try:
            properties = {k: v for k, v in properties.items() if v not in (None, '')}
            contact_id = self.find_contact_id(email)
            if contact_id:
                resp = self._patch(self.PATH_CONTACT, json_data={'properties': properties},
                                   contact_id=contact_id)
            else:
                resp = self._post(self.PATH_CONTACTS, json_data={'properties': properties})

            if resp.status_code in (200, 201):
                item = resp.json()
                props = item.get('properties') or {}
                contact = CRMContact(
                    id=str(item.get('id', contact_id)),
                    name=' '.join(p for p in (props.get('firstname'), props.get('lastname')) if p),
                    email=props.get('email', email),
                    phone=props.get('phone', ''),
                    company=props.get('company', ''),
                    raw_data=item,
                )
                action = 'updated' if contact_id else 'created'
                return CRMResult(success=True, message=f'Contact {action}', contact=contact,
                                 data={'contact_id': contact.id, 'action': action})
            return CRMResult(success=False, message=f'Contact creation failed: {self._error_message(resp)}')
        except Exception as e:
            return CRMResult(success=False, message=f'Contact creation failed: {str(e)}')

    def create_deal(self, mapped: dict, form_settings: dict) -> CRMResult:
        pipeline = form_settings.get('deal_pipeline', '')
        stage = form_settings.get('deal_stage', '')
        if not pipeline or not stage:
            return CRMResult(success=False, message='Deal pipeline and stage are required')

        properties = {
            'dealname': mapped.get('dealname') or form_settings.get('deal_name') or 'Form Submission Deal',
            'amount': str(mapped.get('amount') or '0'),
            'pipeline': pipeline,
            'dealstage': stage,
        }
        try:
            resp = self._post(self.PATH_DEALS, json_data={'properties': properties})
            if resp.status_code in (200, 201):
                item = resp.json()
                deal = CRMDeal(
                    id=str(item.get('id', '')),
                    title=properties['dealname'],
                    pipeline=pipeline,
                    stage=stage,
                    value=parse_amount(properties['amount']),
                    raw_data=item,
                )
                return CRMResult(success=True, message='Deal created', deal=deal,
                                 data={'deal_id': deal.id})
            return CRMResult(success=False, message=f'Deal creation failed: {self._error_message(resp)}')
        except Exception as e:
            return CRMResult(success=False, message=f'Deal creation failed: {str(e)}')

    def update_deal(self, mapped: dict, form_settings: dict) -> CRMResult:
        deal_id = form_settings.get('deal_id', '')
        if not deal_id:
            return CRMResult(success=False, message='Deal ID not specified for update')
        try:
            resp = self._patch(self.PATH_DEAL, json_data={'properties': mapped}, deal_id=deal_id)
            if resp.status_code == 200:
                return CRMResult(success=True, message='Deal updated', data={'deal_id': deal_id})
            return CRMResult(
                success=False,
                message=f'Failed to update deal (HTTP {resp.status_code}): {self._error_message(resp)}',
            )
        except Exception as e:
            return CRMResult(success=False, message=f'Failed to update deal: {str(e)}')

    def enroll_in_workflow(self, email: str, workflow_id: str) -> CRMResult:
        if not workflow_id:
            return CRMResult(success=False, message='Workflow ID is required')
        if not email:
            return CRMResult(success=False, message='Email is required for workflow enrollment')
        try:
            resp = self._post(self.PATH_WORKFLOW_ENROLL, workflow_id=workflow_id, email=email)
            if resp.status_code in (200, 201, 204):
                return CRMResult(success=True, message='Contact enrolled in workflow',
                                 data={'workflow_id': workflow_id})
            return CRMResult(success=False, message=f'Workflow enrollment failed: HTTP {resp.status_code}')
        except Exception as e:
            return CRMResult(success=False, message=f'Workflow enrollment failed: {str(e)}')

    def save_custom_object(self, object_name: str, properties: dict, object_id: str = '') -> CRMResult:
        """Create a custom object record, or update it when object_id is given."""
        try:
            if object_id:
                resp = self._patch(self.PATH_OBJECT, json_data={'properties': properties},
                                   object_name=object_name, object_id=object_id)
                ok = resp.status_code == 200
            else:
                resp = self._post(self.PATH_OBJECTS, json_data={'properties': properties},
                                  object_name=object_name)
                ok = resp.status_code == 201
            if ok:
                item = resp.json()
                return CRMResult(success=True, message=f'{object_name} saved',
                                 data={'object_id': str(item.get('id', object_id))})
            return CRMResult(
                success=False,
                message=f'Failed to save {object_name} - Status: {resp.status_code}, Response: {resp.text[:200]}',
            )
        except Exception as e:
            return CRMResult(success=False, message=f'Failed to save {object_name}: {str(e)}')

    def process_custom_objects(self, field_data: dict, form_settings: dict) -> CRMResult:
        results = {}
        for config in form_settings.get('custom_objects_config') or []:
            object_name = config.get('object_name', '')
            if not config.get('enabled') or not object_name:
                continue
            properties = map_fields(field_data, config.get('field_mapping'))
            if not properties:
                continue
            object_id = config.get('object_id', '') if config.get('action') == 'update' else ''
            results[object_name] = self.save_custom_object(object_name, properties, object_id)

        if not results:
            return CRMResult(success=False, message='No custom objects configured for this form')
        failed = [f'{name}: {r.message}' for name, r in results.items() if not r.success]
        return CRMResult(
            success=not failed,
            message='; '.join(failed) if failed else f'{len(results)} custom object(s) saved',
            data={name: r.to_dict() for name, r in results.items()},
        )

    def submit_form(self, form_id: str, mapped: dict, context: dict) -> CRMResult:
        """Submit to a native HubSpot form through the public Forms API."""
        if not self.portal_id:
            return CRMResult(success=False, message='HubSpot portal ID not configured')
        if not form_id:
            return CRMResult(success=False, message='HubSpot form not selected')

        payload = {
            'fields': [{'name': name, 'value': str(value)} for name, value in mapped.items()],
            'context': {
                'pageUri': context.get('page_url', ''),
                'pageName': context.get('page_title', ''),
                'ipAddress': context.get('ip_address', ''),
            },
        }
        if context.get('hutk'):
            payload['context']['hutk'] = context['hutk']

        try:
            resp = requests.post(
                self.FORMS_SUBMIT_URL.format(portal_id=self.portal_id, form_id=form_id),
                headers={'Content-Type': 'application/json'},
                data=json.dumps(payload),
                timeout=REQUEST_TIMEOUT,
            )
            if resp.status_code in (200, 204):
                return CRMResult(success=True, message='Successfully submitted to HubSpot Form')
            message = f'HTTP {resp.status_code}'
            if resp.text:
                message += f': {self._error_message(resp)}'
            return CRMResult(success=False, message=message)
        except Exception as e:
            return CRMResult(success=False, message=f'API request failed: {str(e)}')

    # ======================================================
    # Submission dispatch
    # ======================================================

    def process_submission(self, submission_id: int, form_data: dict,
                           form_settings: dict) -> CRMResult:
        """Run every enabled HubSpot action for this form, in order."""
        field_data = unwrap_fields(form_data)
        object_type = form_settings.get('object_type') or 'contacts'

        if object_type == 'forms':
            mapped = map_fields(field_data, form_settings.get('form_field_mapping'))
            return self.submit_form(form_settings.get('hubspot_form_id', ''), mapped, form_data.get('context') or {})

        if not self.token:
            return CRMResult(success=False, message='HubSpot not properly configured')

        mapped = map_fields(field_data, form_settings.get('field_mapping'), FALLBACK_FIELD_MAP)
        results = {}

        if object_type == 'contacts':
            results['contact'] = self.upsert_contact(mapped)

        if form_settings.get('deal_enabled'):
            if form_settings.get('deal_update_enabled'):
                results['deal'] = self.update_deal(mapped, form_settings)
            else:
                results['deal'] = self.create_deal(mapped, form_settings)

        if form_settings.get('custom_objects_enabled') and form_settings.get('custom_objects_config'):
            results['custom_objects'] = self.process_custom_objects(field_data, form_settings)

        if form_settings.get('workflow_enabled') and form_settings.get('workflow_id'):
            results['workflow'] = self.enroll_in_workflow(mapped.get('email', ''), form_settings['workflow_id'])

        if not results:
            return CRMResult(success=False, message='No HubSpot actions enabled for this form')

        errors = [f'{action}: {r.message}' for action, r in results.items() if not r.success]
        succeeded = len(results) - len(errors)
        summary = {action: r.to_dict() for action, r in results.items()}
        contact = results['contact'].contact if 'contact' in results else None
        deal = results['deal'].deal if 'deal' in results else None

        if succeeded:
            message = 'Successfully processed in HubSpot'
            if errors:
                message += f" (with errors: {'; '.join(errors)})"
            return CRMResult(success=True, message=message, data=summary, contact=contact, deal=deal)
        return CRMResult(success=False, message='; '.join(errors), data=summary)


# Auto-register
register_connector('hubspot', HubSpotConnector)
