"""
Admin API authentication
The JSON admin API is guarded by a shared key sent as X-API-Key
"""

import hmac
from functools import wraps
from flask import jsonify, request

import config


def api_key_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = config.ADMIN_API_KEY
        provided = request.headers.get('X-API-Key', '')
        if not expected or not hmac.compare_digest(provided, expected):
            return jsonify({'success': False, 'error': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function
