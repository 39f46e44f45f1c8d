"""
Form Manager - Database CRUD for forms and submissions
Supabase client, graceful degradation: errors are printed and an empty value returned
"""

import json
from datetime import datetime
from typing import List, Optional
from supabase import create_client, Client
import pytz

import config


def _decode_json(value, default):
    """JSON columns may come back as text from older rows."""
    if value is None or value == '':
        return default
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return default
        return decoded if isinstance(decoded, type(default)) else default
    return value


def normalize_form(row: Optional[dict]) -> Optional[dict]:
    if not row:
        return None
    form = dict(row)
    form['fields'] = _decode_json(form.get('fields'), [])
    form['settings'] = _decode_json(form.get('settings'), {})
    return form


def normalize_submission(row: dict) -> dict:
    submission = dict(row)
    submission['data'] = _decode_json(submission.get('data'), {})
    return submission


class FormManager:
    def __init__(self, client: Client = None):
        if client is None:
            if not config.SUPABASE_URL or not config.SUPABASE_KEY:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
            client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
        self.supabase: Client = client

    # ========================================
    # FORMS
    # ========================================

    def get_form(self, form_id: int) -> Optional[dict]:
        """Get a single form with decoded fields and settings."""
        try:
            result = self.supabase.table('forms') \
                .select('*') \
                .eq('id', form_id) \
                .limit(1) \
                .execute()
            return normalize_form(result.data[0]) if result.data else None
        except Exception as e:
            print(f"Forms: Error fetching form {form_id}: {e}")
            return None

    def list_forms(self, status: str = '') -> List[dict]:
        try:
            query = self.supabase.table('forms').select('*')
            if status:
                query = query.eq('status', status)
            result = query.order('created_at', desc=True).execute()
            return [normalize_form(row) for row in (result.data or [])]
        except Exception as e:
            print(f"Forms: Error listing forms: {e}")
            return []

    def create_form(self, title: str, fields: list = None, settings: dict = None,
                    status: str = 'active') -> Optional[dict]:
        try:
            now = datetime.now(pytz.UTC).isoformat()
            result = self.supabase.table('forms').insert({
                'title': title,
                'fields': fields or [],
                'settings': settings or {},
                'status': status,
                'created_at': now,
                'updated_at': now,
            }).execute()
            return normalize_form(result.data[0]) if result.data else None
        except Exception as e:
            print(f"Forms: Error creating form: {e}")
            return None

    def update_form(self, form_id: int, **changes) -> Optional[dict]:
        """Overwrite the given columns (title, fields, settings, status) wholesale."""
        allowed = {k: v for k, v in changes.items() if k in ('title', 'fields', 'settings', 'status')}
        if not allowed:
            return self.get_form(form_id)
        try:
            allowed['updated_at'] = datetime.now(pytz.UTC).isoformat()
            result = self.supabase.table('forms') \
                .update(allowed) \
                .eq('id', form_id) \
                .execute()
            return normalize_form(result.data[0]) if result.data else None
        except Exception as e:
            print(f"Forms: Error updating form {form_id}: {e}")
            return None

    def delete_form(self, form_id: int) -> bool:
        """Delete a form and its submissions."""
        try:
            self.supabase.table('submissions').delete().eq('form_id', form_id).execute()
            self.supabase.table('forms').delete().eq('id', form_id).execute()
            return True
        except Exception as e:
            print(f"Forms: Error deleting form {form_id}: {e}")
            return False

    # ========================================
    # SUBMISSIONS
    # ========================================

    def insert_submission(self, form_id: int, data: dict, ip_address: str = '',
                          user_agent: str = '') -> Optional[int]:
        """Store a submission and return its id, or None on failure."""
        try:
            result = self.supabase.table('submissions').insert({
                'form_id': form_id,
                'data': data,
                'ip_address': ip_address,
                'user_agent': user_agent[:255],
                'created_at': datetime.now(pytz.UTC).isoformat(),
            }).execute()
            return result.data[0]['id'] if result.data else None
        except Exception as e:
            print(f"Submission: Error saving submission for form {form_id}: {e}")
            return None

    def get_submissions(self, form_id: int, limit: int = 50, offset: int = 0) -> List[dict]:
        try:
            result = self.supabase.table('submissions') \
                .select('*') \
                .eq('form_id', form_id) \
                .order('created_at', desc=True) \
                .range(offset, offset + limit - 1) \
                .execute()
            return [normalize_submission(row) for row in (result.data or [])]
        except Exception as e:
            print(f"Submission: Error fetching submissions for form {form_id}: {e}")
            return []

    def count_submissions(self, form_id: int) -> int:
        try:
            result = self.supabase.table('submissions') \
                .select('id', count='exact') \
                .eq('form_id', form_id) \
                .execute()
            return result.count or 0
        except Exception as e:
            print(f"Submission: Error counting submissions for form {form_id}: {e}")
            return 0

    def delete_submission(self, submission_id: int) -> bool:
        try:
            self.supabase.table('submissions').delete().eq('id', submission_id).execute()
            return True
        except Exception as e:
            print(f"Submission: Error deleting submission {submission_id}: {e}")
            return False
