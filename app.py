"""
Connect2Form - Web Service
Public submission endpoint plus the JSON admin API
"""

import os
from flask import Flask, request, jsonify

from rate_limiter import get_client_ip
from services import get_handler


def create_app(handler=None):
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = int(os.getenv('MAX_CONTENT_LENGTH', 25 * 1024 * 1024))
    if handler is not None:
        app.config['SUBMISSION_HANDLER'] = handler

    from forms_api import forms_api_bp
    from integrations_api import integrations_api_bp
    app.register_blueprint(forms_api_bp)
    app.register_blueprint(integrations_api_bp)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.route('/submit', methods=['POST'])
    @app.route('/forms/<int:form_id>/submit', methods=['POST'])
    def submit(form_id=None):
        """Handle a form submission (form-encoded, multipart or JSON)"""
        if request.is_json:
            data = request.get_json(silent=True) or {}
            if not isinstance(data, dict):
                return jsonify({'success': False, 'data': 'Invalid submission'}), 400
        else:
            data = {}
            for key in request.form.keys():
                values = request.form.getlist(key)
                # checkbox groups post name[] or repeated keys
                data[key.removesuffix('[]')] = values if len(values) > 1 or key.endswith('[]') else values[0]

        result = get_handler().handle_submission(
            form_id if form_id is not None else data.get('form_id'),
            data,
            files=request.files,
            client_ip=get_client_ip(request.headers, request.remote_addr or ''),
            user_agent=request.headers.get('User-Agent', ''),
        )
        return jsonify(result.to_response()), result.status_code

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({'success': False, 'data': 'Upload too large'}), 413

    return app


app = create_app()


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    app.run(host='0.0.0.0', port=port)
