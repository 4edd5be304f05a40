import logging
from functools import wraps

from flask import request, redirect, url_for, flash, g, session
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError

from educentral.firebase_init import get_auth, get_db
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA, STAFF_ROLES, role_display

logger = logging.getLogger(__name__)


def _verify_session():
    """Verify the Firebase session cookie and load the users/{uid} profile."""
    session_cookie = session.get('firebase_session')
    if not session_cookie:
        return None

    auth = get_auth()
    try:
        decoded = auth.verify_session_cookie(session_cookie, check_revoked=True)
    except (ValueError, firebase_auth.InvalidSessionCookieError,
            firebase_auth.ExpiredSessionCookieError, firebase_auth.RevokedSessionCookieError,
            firebase_auth.UserDisabledError) as e:
        logger.info('Dropping invalid session cookie: %s', e)
        session.pop('firebase_session', None)
        return None
    except FirebaseError:
        # e.g. CertificateFetchError; the cookie itself may still be valid
        logger.exception('Could not verify session cookie')
        return None

    uid = decoded['uid']
    db = get_db()
    user_doc = db.collection('users').document(uid).get()
    if not user_doc.exists:
        logger.warning('Session for uid %s has no users document', uid)
        return None

    user_data = user_doc.to_dict()
    user_data['uid'] = uid
    user_data['id'] = uid

    # Older student documents only carry the class id
    if user_data.get('role') == SISWA and user_data.get('classId') and not user_data.get('className'):
        class_doc = db.collection('classes').document(user_data['classId']).get()
        if class_doc.exists:
            user_data['className'] = class_doc.to_dict().get('name')
    return user_data


class CurrentUser:
    """Proxy object providing attribute access to the current user dict."""

    def __init__(self, data=None):
        self._data = data or {}

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        return self._data.get(name)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    def get(self, key, default=None):
        return self._data.get(key, default)

    @property
    def is_authenticated(self):
        return bool(self._data)

    @property
    def uid(self):
        return self._data.get('uid', '')

    @property
    def id(self):
        return self._data.get('uid', '')

    @property
    def role(self):
        return self._data.get('role')

    @property
    def role_name(self):
        return role_display(self.role)

    @property
    def display_name(self):
        return self._data.get('name') or self._data.get('email', '')

    @property
    def initial(self):
        name = self.display_name
        return name[0].upper() if name else '?'

    @property
    def class_id(self):
        """The class whose data this user looks at: own class or the child's."""
        if self.role == ORANGTUA:
            return self._data.get('linkedStudentClassId')
        return self._data.get('classId')

    @property
    def class_name(self):
        if self.role == ORANGTUA:
            return self._data.get('linkedStudentClassName')
        return self._data.get('className')

    @property
    def student_id(self):
        """The student whose grades and attendance this user may see."""
        if self.role == SISWA:
            return self.uid
        if self.role == ORANGTUA:
            return self._data.get('linkedStudentId')
        return None

    @property
    def assigned_class_ids(self):
        return list(self._data.get('assignedClassIds') or [])

    @property
    def is_admin(self):
        return self.role == ADMIN

    @property
    def is_guru(self):
        return self.role == GURU

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES


def load_current_user():
    """Load current user into g before each request."""
    if hasattr(g, '_current_user'):
        return
    user_data = _verify_session()
    g._current_user = CurrentUser(user_data)


def get_current_user():
    if not hasattr(g, '_current_user'):
        load_current_user()
    return g._current_user


def auth_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_current_user()
        if not user.is_authenticated:
            flash('Silakan masuk terlebih dahulu.', 'info')
            return redirect(url_for('auth.login', next=request.url))
        return f(*args, **kwargs)
    return decorated


def role_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = get_current_user()
            if not user.is_authenticated:
                flash('Silakan masuk terlebih dahulu.', 'info')
                return redirect(url_for('auth.login', next=request.url))
            if user.role not in roles:
                flash('Anda tidak memiliki akses ke halaman ini.', 'danger')
                return redirect(url_for('main.dashboard'))
            return f(*args, **kwargs)
        return decorated
    return decorator
