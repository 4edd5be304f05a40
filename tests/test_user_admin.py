import re
from types import SimpleNamespace

import firebase_admin
import pytest
from google.api_core.exceptions import ServiceUnavailable

from educentral import firebase_init
from educentral import firestore_dao as dao
from educentral.errors import DuplicateEmailError, NotFoundError, ValidationFailed
from educentral.forms import AddUserForm, EditUserForm
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA
from educentral.services import user_admin


@pytest.fixture
def school(db):
    db.seed('classes', 'c1', name='4A', teacherId='t1', teacherName='Siti Rahmawati')
    db.seed('classes', 'c2', name='5B')
    db.seed('teachers', 't1', name='Siti Rahmawati', email='siti@sekolah.sch.id', uid=None)
    db.seed('teachers', 't2', name='Budi Santoso', email='budi@sekolah.sch.id', uid=None)
    db.seed('lessons', 'l1', teacherId='t1', classId='c1', subjectId='s1', dayOfWeek='Senin')
    db.seed('lessons', 'l2', teacherId='t1', classId='c2', subjectId='s1', dayOfWeek='Selasa')
    db.seed('users', 'stu1', uid=None, role=SISWA, name='Andi Pratama', classId='c1', className='4A')
    db.seed('parents', 'p1', name='Rina Pratama', email='rina@gmail.com', studentId='stu1',
            studentName='Andi Pratama', uid=None)
    return db


# ---------------------------------------------------------------------------
# Add
# ---------------------------------------------------------------------------

def test_fallback_email_is_built_from_the_name():
    assert user_admin.fallback_email('Budi  Santoso') == 'budi.santoso@sekolah.sch.id'
    assert user_admin.fallback_email("Siti Nur'aini", 'sdn.sch.id') == 'siti.nuraini@sdn.sch.id'
    assert user_admin.fallback_email('   ') == 'pengguna@sekolah.sch.id'


def test_fallback_email_for_generated_names(faker):
    for _ in range(20):
        local, domain = user_admin.fallback_email(faker.name()).split('@')
        assert domain == 'sekolah.sch.id'
        assert re.fullmatch(r'[a-z0-9._-]+', local)


def test_add_without_email_registers_the_school_address(school, fake_auth, secondary_apps, faker):
    name = f'{faker.first_name()} {faker.last_name()}'
    user_admin.add_user(SISWA, name, 'rahasia1', class_id='c1')
    created = fake_auth.created[0]
    assert created['email'] == user_admin.fallback_email(name)
    assert created['display_name'] == name


def test_add_student_uses_secondary_app_and_tears_it_down(school, fake_auth, secondary_apps):
    uid = user_admin.add_user(SISWA, 'Andi Saputra', 'rahasia1', class_id='c1')

    assert secondary_apps == [('init', 'secondary-0'), ('delete', 'secondary-0')]
    created = fake_auth.created[0]
    assert created['app'].name == 'secondary-0'
    assert created['email'] == 'andi.saputra@sekolah.sch.id'

    user = school.doc('users', uid)
    assert user['role'] == SISWA
    assert user['classId'] == 'c1'
    assert user['className'] == '4A'
    assert user['uid'] == uid
    assert 'createdAt' in user


def test_add_with_taken_email_is_a_field_error_and_writes_nothing(school, fake_auth, secondary_apps):
    fake_auth.existing_emails.add('budi@sekolah.sch.id')
    before = school.docs('users')

    with pytest.raises(DuplicateEmailError) as excinfo:
        user_admin.add_user(ADMIN, 'Budi Admin', 'rahasia1', email='budi@sekolah.sch.id')

    assert excinfo.value.field == 'email'
    assert school.docs('users') == before
    assert secondary_apps[-1][0] == 'delete'


def test_add_teacher_links_profile_and_derives_classes(school, fake_auth, secondary_apps):
    uid = user_admin.add_user(GURU, '', 'rahasia1', teacher_profile_id='t1')

    user = school.doc('users', uid)
    assert user['name'] == 'Siti Rahmawati'
    assert user['email'] == 'siti@sekolah.sch.id'
    assert user['assignedClassIds'] == ['c1', 'c2']
    assert school.doc('teachers', 't1')['uid'] == uid


def test_add_teacher_without_lessons_is_refused_before_any_account(school, fake_auth, secondary_apps):
    with pytest.raises(ValidationFailed) as excinfo:
        user_admin.add_user(GURU, '', 'rahasia1', teacher_profile_id='t2')

    assert excinfo.value.field == 'teacher_profile_id'
    assert fake_auth.created == []
    assert secondary_apps == []


def test_add_teacher_refuses_an_already_linked_profile(school, fake_auth, secondary_apps):
    school.seed('teachers', 't1', name='Siti Rahmawati', uid='someone')
    with pytest.raises(ValidationFailed):
        user_admin.add_user(GURU, '', 'rahasia1', teacher_profile_id='t1')


def test_add_parent_copies_the_child_and_links_profile(school, fake_auth, secondary_apps):
    uid = user_admin.add_user(ORANGTUA, 'Rina Pratama', 'rahasia1', parent_profile_id='p1')

    user = school.doc('users', uid)
    assert user['email'] == 'rina@gmail.com'
    assert user['linkedStudentId'] == 'stu1'
    assert user['linkedStudentClassId'] == 'c1'
    assert user['linkedStudentClassName'] == '4A'
    assert school.doc('parents', 'p1')['uid'] == uid


def test_add_student_with_unknown_class_is_refused(school, fake_auth, secondary_apps):
    with pytest.raises(ValidationFailed) as excinfo:
        user_admin.add_user(SISWA, 'Andi', 'rahasia1', class_id='ghost')
    assert excinfo.value.field == 'class_id'


def test_failed_profile_link_rolls_back_the_account(school, fake_auth, secondary_apps, monkeypatch):
    def broken_link(teacher_id, uid):
        raise ServiceUnavailable('firestore unavailable')

    monkeypatch.setattr(dao, 'link_teacher', broken_link)

    with pytest.raises(ServiceUnavailable):
        user_admin.add_user(GURU, '', 'rahasia1', teacher_profile_id='t1')

    uid = fake_auth.created[0]['uid']
    assert school.doc('users', uid) is None
    assert [d[0] for d in fake_auth.deleted] == [uid]
    assert secondary_apps[-1] == ('delete', 'secondary-0')


def test_secondary_app_is_deleted_when_the_body_raises(monkeypatch):
    calls = []
    monkeypatch.setattr(firebase_init, '_load_credentials', lambda: 'cred')
    monkeypatch.setattr(firebase_admin, 'initialize_app',
                        lambda cred, name=None: calls.append(('init', name)) or SimpleNamespace(name=name))
    monkeypatch.setattr(firebase_admin, 'delete_app', lambda app: calls.append(('delete', app.name)))

    with pytest.raises(RuntimeError):
        with firebase_init.secondary_app():
            raise RuntimeError('boom')

    assert [c[0] for c in calls] == ['init', 'delete']
    assert calls[0][1] == calls[1][1]
    assert calls[0][1].startswith('user-creation-app-')


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

def test_teacher_changed_to_student_loses_assigned_classes(school):
    school.seed('users', 'g1', uid='g1', role=GURU, name='Siti', assignedClassIds=['c1', 'c2'])
    school.seed('teachers', 't1', name='Siti Rahmawati', uid='g1')

    user_admin.edit_user('g1', 'Siti Rahma', SISWA, class_id='c2')

    user = school.doc('users', 'g1')
    assert 'assignedClassIds' not in user
    assert user['classId'] == 'c2'
    assert user['className'] == '5B'
    assert user['role'] == SISWA
    assert school.doc('teachers', 't1')['uid'] is None


def test_student_changed_to_parent_loses_class_fields(school):
    user_admin.edit_user('stu1', 'Andi Pratama', ORANGTUA)

    user = school.doc('users', 'stu1')
    assert 'classId' not in user
    assert 'className' not in user
    assert user['role'] == ORANGTUA


def test_teacher_edit_keeps_only_existing_classes(school):
    school.seed('users', 'g1', uid='g1', role=GURU, name='Siti', assignedClassIds=['c1'])

    user_admin.edit_user('g1', 'Siti', GURU, assigned_class_ids=['c2', 'ghost'])

    user = school.doc('users', 'g1')
    assert user['assignedClassIds'] == ['c2']
    assert 'classId' not in user


def test_teacher_edit_without_any_valid_class_is_refused(school):
    school.seed('users', 'g1', uid='g1', role=GURU, name='Siti', assignedClassIds=['c1'])
    with pytest.raises(ValidationFailed) as excinfo:
        user_admin.edit_user('g1', 'Siti', GURU, assigned_class_ids=['ghost'])
    assert excinfo.value.field == 'assigned_class_ids'


def test_edit_unknown_user(school):
    with pytest.raises(NotFoundError):
        user_admin.edit_user('nobody', 'X', SISWA, class_id='c1')


def test_role_field_updates_for_admin_clear_everything():
    updates = user_admin.role_field_updates(ADMIN)
    assert set(updates) == {'classId', 'className', 'assignedClassIds'}
    assert all(v is dao.DELETE_FIELD for v in updates.values())


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def test_delete_refuses_own_account(school, fake_auth):
    with pytest.raises(ValidationFailed):
        user_admin.delete_user('stu1', current_uid='stu1')
    assert school.doc('users', 'stu1') is not None


def test_delete_removes_document_unlinks_profiles_and_auth(school, fake_auth):
    school.seed('users', 'pa1', uid='pa1', role=ORANGTUA, name='Rina')
    school.seed('parents', 'p1', name='Rina Pratama', studentId='stu1', uid='pa1')

    deleted = user_admin.delete_user('pa1', current_uid='admin1')

    assert deleted['name'] == 'Rina'
    assert school.doc('users', 'pa1') is None
    assert school.doc('parents', 'p1')['uid'] is None
    assert fake_auth.deleted == [('pa1', None)]


def test_delete_record_without_auth_account(school, fake_auth):
    fake_auth.missing_uids.add('stu1')
    user_admin.delete_user('stu1', current_uid='admin1')
    assert school.doc('users', 'stu1') is None


def test_delete_unknown_user(school, fake_auth):
    with pytest.raises(NotFoundError):
        user_admin.delete_user('nobody', current_uid='admin1')


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

def _add_form(app, data, teacher_class_ids=None):
    with app.test_request_context(method='POST', data=data):
        form = AddUserForm(teacher_class_ids=teacher_class_ids or {})
        ok = form.validate()
        return ok, form.errors


def test_admin_account_needs_email_and_security_code(app):
    ok, errors = _add_form(app, {'role': ADMIN, 'name': 'Kepala Sekolah', 'password': 'rahasia1',
                                 'admin_code': '0000'})
    assert not ok
    assert 'email' in errors
    assert 'admin_code' in errors

    ok, _ = _add_form(app, {'role': ADMIN, 'name': 'Kepala Sekolah', 'password': 'rahasia1',
                            'email': 'kepsek@sekolah.sch.id', 'admin_code': '1234'})
    assert ok


def test_teacher_account_needs_a_profile_with_lessons(app):
    ok, errors = _add_form(app, {'role': GURU, 'password': 'rahasia1'})
    assert not ok and 'teacher_profile_id' in errors

    ok, errors = _add_form(app, {'role': GURU, 'password': 'rahasia1', 'teacher_profile_id': 't2'},
                           teacher_class_ids={'t1': ['c1']})
    assert not ok and 'teacher_profile_id' in errors

    ok, _ = _add_form(app, {'role': GURU, 'password': 'rahasia1', 'teacher_profile_id': 't1'},
                      teacher_class_ids={'t1': ['c1']})
    assert ok


def test_student_and_parent_accounts_need_their_links(app):
    ok, errors = _add_form(app, {'role': SISWA, 'name': 'Andi', 'password': 'rahasia1'})
    assert not ok and 'class_id' in errors

    ok, errors = _add_form(app, {'role': ORANGTUA, 'name': 'Rina', 'password': 'rahasia1'})
    assert not ok and 'parent_profile_id' in errors


def test_short_password_and_name_are_rejected(app):
    ok, errors = _add_form(app, {'role': SISWA, 'name': 'An', 'password': '123', 'class_id': 'c1'})
    assert not ok
    assert 'password' in errors
    assert 'name' in errors


def test_edit_form_role_rules(app):
    with app.test_request_context(method='POST', data={'name': 'Siti Rahma', 'role': GURU}):
        form = EditUserForm()
        assert not form.validate()
        assert 'assigned_class_ids' in form.errors

    with app.test_request_context(method='POST', data={'name': 'Siti Rahma', 'role': ADMIN}):
        assert EditUserForm().validate()
