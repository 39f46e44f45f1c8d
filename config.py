"""
Connect2Form Configuration
Environment-driven settings shared by the web service and the pipeline
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Supabase
SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_KEY = os.getenv('SUPABASE_KEY')

# Outbound email (Resend)
FROM_EMAIL = os.getenv('FROM_EMAIL', 'forms@connect2form.app')
SITE_NAME = os.getenv('SITE_NAME', 'Connect2Form')
SITE_TIMEZONE = os.getenv('SITE_TIMEZONE', 'UTC')

# Abuse protection
MAX_SUBMISSIONS_PER_HOUR = int(os.getenv('MAX_SUBMISSIONS_PER_HOUR', 10))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', 3600))
SUBMISSION_MAX_AGE_SECONDS = int(os.getenv('SUBMISSION_MAX_AGE_SECONDS', 86400))
RECAPTCHA_SECRET_KEY = os.getenv('RECAPTCHA_SECRET_KEY', '')

# Uploads
UPLOAD_DIR = os.getenv('UPLOAD_DIR', os.path.join(os.getcwd(), 'uploads'))
UPLOAD_BASE_URL = os.getenv('UPLOAD_BASE_URL', '/uploads')
MAX_UPLOAD_BYTES = int(os.getenv('MAX_UPLOAD_BYTES', 5 * 1024 * 1024))

# Admin JSON API
ADMIN_API_KEY = os.getenv('ADMIN_API_KEY', '')

# Integration logs older than this are removed by clear_old_logs()
LOG_RETENTION_DAYS = int(os.getenv('LOG_RETENTION_DAYS', 30))
