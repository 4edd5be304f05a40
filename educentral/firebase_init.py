import logging
import os
import time
from contextlib import contextmanager

import firebase_admin
from firebase_admin import credentials, firestore, storage, auth

logger = logging.getLogger(__name__)

_app = None
_db = None
_bucket = None


def _load_credentials():
    cred_path = os.environ.get('GOOGLE_APPLICATION_CREDENTIALS', './firebase-service-account.json')
    if os.path.exists(cred_path):
        return credentials.Certificate(cred_path)
    return credentials.ApplicationDefault()


def init_firebase(app_config=None):
    global _app, _db, _bucket

    if _app is not None:
        return

    bucket_name = ''
    if app_config:
        bucket_name = app_config.get('FIREBASE_STORAGE_BUCKET', '')
    if not bucket_name:
        bucket_name = os.environ.get('FIREBASE_STORAGE_BUCKET', '')

    options = {}
    if bucket_name:
        options['storageBucket'] = bucket_name

    _app = firebase_admin.initialize_app(_load_credentials(), options=options if options else None)
    _db = firestore.client()

    if bucket_name:
        _bucket = storage.bucket()
    logger.info('Firebase initialised (bucket=%s)', bucket_name or '-')


def get_db():
    global _db
    if _db is None:
        init_firebase()
    return _db


def get_bucket():
    global _bucket
    if _bucket is None:
        init_firebase()
    return _bucket


def get_auth():
    return auth


@contextmanager
def secondary_app():
    """Yield a throwaway Firebase app for creating credentials.

    Accounts created through it never touch the default app, and the app
    is deleted on exit whether or not the body raised.
    """
    name = f'user-creation-app-{int(time.time() * 1000)}-{os.getpid()}'
    app = firebase_admin.initialize_app(_load_credentials(), name=name)
    try:
        yield app
    finally:
        firebase_admin.delete_app(app)
        logger.debug('Secondary app %s deleted', name)
