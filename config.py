import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.environ.get('SESSION_SECRET') or os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    FIREBASE_WEB_API_KEY = os.environ.get('FIREBASE_WEB_API_KEY', '')
    FIREBASE_STORAGE_BUCKET = os.environ.get('FIREBASE_STORAGE_BUCKET', '')
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'eventlet')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Required when creating an account with the admin role
    ADMIN_SECURITY_CODE = os.environ.get('ADMIN_SECURITY_CODE', '1234')
    SCHOOL_EMAIL_DOMAIN = os.environ.get('SCHOOL_EMAIL_DOMAIN', 'sekolah.sch.id')
    ITEMS_PER_PAGE = int(os.environ.get('ITEMS_PER_PAGE', 10))
    MAX_UPLOAD_SIZE = 5 * 1024 * 1024


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    FIREBASE_WEB_API_KEY = 'test-api-key'
    ADMIN_SECURITY_CODE = '1234'
