"""Account administration: create, edit and delete users.

A user spans two systems: the Firebase Auth account and the ``users/{uid}``
profile document. Teachers and parents are additionally linked to their
profile documents in ``teachers`` / ``parents`` through a ``uid`` field.

Accounts are created through a throwaway secondary Firebase app so the
admin's own session is never involved. When a Firestore write fails after
the account exists, the account and any profile written so far are removed
again before the error propagates.
"""

import logging
import re
from collections import defaultdict

from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPIError

from educentral import firebase_init
from educentral import firestore_dao as dao
from educentral.errors import DuplicateEmailError, NotFoundError, ValidationFailed
from educentral.roles import GURU, SISWA, ORANGTUA, ROLES

logger = logging.getLogger(__name__)


def fallback_email(name, domain='sekolah.sch.id'):
    """School address used when no email is given, e.g. ``budi.santoso@sekolah.sch.id``."""
    local = re.sub(r'\s+', '.', (name or '').strip().lower())
    local = re.sub(r'[^a-z0-9._-]', '', local) or 'pengguna'
    return f'{local}@{domain}'


def teacher_class_ids_map(lessons=None):
    """Map teacher profile id -> sorted class ids it has lessons in."""
    if lessons is None:
        lessons = dao.get_all_lessons()
    mapping = defaultdict(set)
    for lesson in lessons:
        if lesson.get('teacherId') and lesson.get('classId'):
            mapping[lesson['teacherId']].add(lesson['classId'])
    return {teacher_id: sorted(ids) for teacher_id, ids in mapping.items()}


def load_form_options():
    """Everything the add/edit forms need to offer as choices."""
    return {
        'classes': dao.get_all_classes(),
        'teachers': dao.get_unlinked_teachers(),
        'parents': dao.get_unlinked_parents(),
        'teacher_class_ids': teacher_class_ids_map(),
    }


def list_users(search='', role=''):
    users = dao.get_all_users()
    if role in ROLES:
        users = [u for u in users if u.get('role') == role]
    term = (search or '').strip().lower()
    if term:
        users = [u for u in users
                 if term in (u.get('name') or '').lower() or term in (u.get('email') or '').lower()]
    return users


# ---------------------------------------------------------------------------
# Add
# ---------------------------------------------------------------------------

def build_profile(role, name, email, class_id=None, teacher_profile_id=None, parent_profile_id=None):
    """Resolve the linked documents for a new account.

    Returns ``(profile, link)`` where ``profile`` is the users document body
    and ``link`` is ``(collection, doc_id)`` of the profile to stamp the new
    uid onto, or None.
    """
    if role not in ROLES:
        raise ValidationFailed('Peran tidak dikenal.', field='role')

    profile = {'name': name, 'email': email, 'role': role}
    link = None

    if role == GURU:
        teacher = dao.get_teacher(teacher_profile_id)
        if not teacher:
            raise ValidationFailed('Profil guru tidak ditemukan.', field='teacher_profile_id')
        if teacher.get('uid'):
            raise ValidationFailed('Profil guru ini sudah tertaut ke akun lain.', field='teacher_profile_id')
        class_ids = dao.get_class_ids_for_teacher(teacher['id'])
        if not class_ids:
            raise ValidationFailed('Guru ini belum memiliki jadwal pelajaran di kelas mana pun.',
                                   field='teacher_profile_id')
        profile['name'] = teacher.get('name') or name
        profile['email'] = email or teacher.get('email')
        profile['assignedClassIds'] = class_ids
        link = ('teachers', teacher['id'])

    elif role == SISWA:
        school_class = dao.get_class(class_id)
        if not school_class:
            raise ValidationFailed('Kelas tidak ditemukan.', field='class_id')
        profile['classId'] = school_class['id']
        profile['className'] = school_class.get('name')

    elif role == ORANGTUA:
        parent = dao.get_parent(parent_profile_id)
        if not parent:
            raise ValidationFailed('Profil orang tua tidak ditemukan.', field='parent_profile_id')
        if parent.get('uid'):
            raise ValidationFailed('Profil orang tua ini sudah tertaut ke akun lain.',
                                   field='parent_profile_id')
        profile['email'] = email or parent.get('email')
        student = dao.get_user(parent.get('studentId')) if parent.get('studentId') else None
        if student:
            profile['linkedStudentId'] = student['id']
            profile['linkedStudentName'] = student.get('name')
            profile['linkedStudentClassId'] = student.get('classId')
            profile['linkedStudentClassName'] = student.get('className')
        link = ('parents', parent['id'])

    return profile, link


def add_user(role, name, password, email=None, class_id=None, teacher_profile_id=None,
             parent_profile_id=None, email_domain='sekolah.sch.id'):
    """Create the auth account, the users document and the profile link.

    Returns the new uid. Raises DuplicateEmailError when the address is
    taken, ValidationFailed when a referenced document is unusable.
    """
    profile, link = build_profile(role, (name or '').strip(), (email or '').strip() or None,
                                  class_id=class_id, teacher_profile_id=teacher_profile_id,
                                  parent_profile_id=parent_profile_id)
    if not profile['email']:
        profile['email'] = fallback_email(profile['name'], email_domain)

    auth = firebase_init.get_auth()
    with firebase_init.secondary_app() as fb_app:
        try:
            record = auth.create_user(email=profile['email'], password=password,
                                      display_name=profile['name'], app=fb_app)
        except firebase_auth.EmailAlreadyExistsError:
            logger.info('Refused to create %s: email already registered', profile['email'])
            raise DuplicateEmailError()

        uid = record.uid
        profile_written = False
        try:
            dao.create_user(uid, profile)
            profile_written = True
            if link:
                collection, doc_id = link
                if collection == 'teachers':
                    dao.link_teacher(doc_id, uid)
                else:
                    dao.link_parent(doc_id, uid)
        except GoogleAPIError:
            logger.exception('Saving profile for %s failed, removing the new account', uid)
            _rollback(uid, fb_app, profile_written)
            raise

    logger.info('Created %s account %s (%s)', role, uid, profile['email'])
    return uid


def _rollback(uid, fb_app, profile_written):
    if profile_written:
        try:
            dao.delete_user(uid)
        except GoogleAPIError:
            logger.exception('Could not remove users/%s during rollback', uid)
    try:
        firebase_init.get_auth().delete_user(uid, app=fb_app)
    except (FirebaseError, ValueError):
        logger.exception('Could not remove auth account %s during rollback', uid)


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

def role_field_updates(role, class_doc=None, assigned_class_ids=None):
    """Field changes that keep the class fields consistent with ``role``.

    Students own ``classId``/``className``, teachers own ``assignedClassIds``;
    whatever the role does not own is removed with DELETE_FIELD.
    """
    if role == GURU:
        if not assigned_class_ids:
            raise ValidationFailed('Guru harus mengajar minimal satu kelas.', field='assigned_class_ids')
        return {
            'assignedClassIds': sorted(set(assigned_class_ids)),
            'classId': dao.DELETE_FIELD,
            'className': dao.DELETE_FIELD,
        }
    if role == SISWA:
        if not class_doc:
            raise ValidationFailed('Siswa harus terdaftar di satu kelas.', field='class_id')
        return {
            'classId': class_doc['id'],
            'className': class_doc.get('name'),
            'assignedClassIds': dao.DELETE_FIELD,
        }
    return {
        'classId': dao.DELETE_FIELD,
        'className': dao.DELETE_FIELD,
        'assignedClassIds': dao.DELETE_FIELD,
    }


def edit_user(uid, name, role, class_id=None, assigned_class_ids=None):
    user = dao.get_user(uid)
    if not user:
        raise NotFoundError(uid)
    if role not in ROLES:
        raise ValidationFailed('Peran tidak dikenal.', field='role')

    class_doc = None
    if role == SISWA:
        class_doc = dao.get_class(class_id)
        if not class_doc:
            raise ValidationFailed('Kelas tidak ditemukan.', field='class_id')
    if role == GURU:
        known = {c['id'] for c in dao.get_classes_by_ids(assigned_class_ids or [])}
        assigned_class_ids = [c for c in assigned_class_ids or [] if c in known]

    updates = {'name': name.strip(), 'role': role}
    updates.update(role_field_updates(role, class_doc, assigned_class_ids))
    dao.update_user(uid, updates)

    previous = user.get('role')
    if previous != role:
        if previous == GURU:
            dao.unlink_profiles('teachers', uid)
        elif previous == ORANGTUA:
            dao.unlink_profiles('parents', uid)
        logger.info('Changed role of %s from %s to %s', uid, previous, role)
    return updates


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def delete_user(uid, current_uid=None):
    if uid == current_uid:
        raise ValidationFailed('Anda tidak dapat menghapus akun Anda sendiri.')
    user = dao.get_user(uid)
    if not user:
        raise NotFoundError(uid)

    dao.delete_user(uid)
    dao.unlink_profiles('teachers', uid)
    dao.unlink_profiles('parents', uid)

    try:
        firebase_init.get_auth().delete_user(uid)
    except firebase_auth.UserNotFoundError:
        logger.info('users/%s had no auth account', uid)
    logger.info('Deleted user %s (%s)', uid, user.get('role'))
    return user