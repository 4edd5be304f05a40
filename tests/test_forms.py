from educentral.forms import AnnouncementForm, ExamForm, LessonForm, RegistrationForm, ResultForm
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA
from educentral.routes.announcements import _check_targets


def _validate(app, form_class, data):
    with app.test_request_context(method='POST', data=data):
        form = form_class()
        ok = form.validate()
        return ok, form.errors


RESULT = {
    'student_id': 's1', 'subject_id': 'sub1', 'assessment_title': 'UTS Matematika',
    'assessment_type': 'UTS', 'score': '80', 'max_score': '100', 'grade': 'B',
    'date_of_assessment': '2025-03-05',
}


def test_result_score_cannot_exceed_max_score(app):
    ok, _ = _validate(app, ResultForm, RESULT)
    assert ok

    ok, errors = _validate(app, ResultForm, dict(RESULT, score='45', max_score='40'))
    assert not ok
    assert errors['score'] == ['Nilai tidak boleh melebihi nilai maksimal.']

    ok, errors = _validate(app, ResultForm, dict(RESULT, score='101', max_score=''))
    assert not ok and 'score' in errors


def test_result_score_range_and_grade_length(app):
    ok, errors = _validate(app, ResultForm, dict(RESULT, score='-1'))
    assert not ok and 'score' in errors

    ok, errors = _validate(app, ResultForm, dict(RESULT, score='1001', max_score='2000'))
    assert not ok and 'score' in errors

    ok, errors = _validate(app, ResultForm, dict(RESULT, score='900', max_score='1000'))
    assert ok

    ok, errors = _validate(app, ResultForm, dict(RESULT, max_score='0'))
    assert not ok and 'max_score' in errors

    ok, errors = _validate(app, ResultForm, dict(RESULT, grade='A-PLUS'))
    assert not ok and errors['grade'] == ['Predikat maksimal 5 karakter']


LESSON = {'subject_id': 'sub1', 'class_id': 'c1', 'teacher_id': 't1', 'day_of_week': 'Senin',
          'start_time': '07:30', 'end_time': '09:00'}
EXAM = {'title': 'UTS Matematika', 'subject_id': 'sub1', 'class_id': 'c1', 'date': '2025-03-10',
        'start_time': '08:00', 'end_time': '09:30'}


def test_lesson_and_exam_must_end_after_they_start(app):
    for form_class, data in ((LessonForm, LESSON), (ExamForm, EXAM)):
        ok, _ = _validate(app, form_class, data)
        assert ok

        ok, errors = _validate(app, form_class, dict(data, end_time=data['start_time']))
        assert not ok
        assert errors['end_time'] == ['Jam selesai harus setelah jam mulai.']

        ok, errors = _validate(app, form_class, dict(data, end_time='06:00'))
        assert not ok and 'end_time' in errors


def test_time_fields_need_hh_mm(app):
    ok, errors = _validate(app, LessonForm, dict(LESSON, start_time='7.30'))
    assert not ok
    assert 'Format jam HH:MM' in errors['start_time']


REGISTRATION = {'name': 'Andi Pratama', 'email': 'andi@sekolah.sch.id', 'password': 'rahasia1',
                'confirm_password': 'rahasia1'}


def test_only_non_admin_roles_may_self_register(app):
    for role in (GURU, SISWA, ORANGTUA):
        ok, _ = _validate(app, RegistrationForm, dict(REGISTRATION, role=role))
        assert ok, role

    ok, errors = _validate(app, RegistrationForm, dict(REGISTRATION, role=ADMIN))
    assert not ok and 'role' in errors


def test_registration_password_rules(app):
    ok, errors = _validate(app, RegistrationForm, dict(REGISTRATION, role=SISWA, confirm_password='lain'))
    assert not ok
    assert errors['confirm_password'] == ['Kata sandi tidak cocok']

    ok, errors = _validate(app, RegistrationForm, dict(REGISTRATION, role=SISWA, password='123',
                                                        confirm_password='123'))
    assert not ok and 'password' in errors


ANNOUNCEMENT = {'title': 'Rapat Orang Tua', 'content': 'Rapat dimulai pukul delapan pagi.'}


def test_announcement_needs_an_audience(app):
    ok, errors = _validate(app, AnnouncementForm, ANNOUNCEMENT)
    assert not ok
    assert errors['target_audience'] == ['Pilih minimal satu peran tujuan.']


def test_teacher_announcement_to_parents_needs_classes(app, make_user):
    teacher = make_user('g1', GURU)
    admin = make_user('adm', ADMIN)

    with app.test_request_context(method='POST', data=dict(ANNOUNCEMENT, target_audience=ORANGTUA)):
        form = AnnouncementForm()
        assert form.validate()
        assert _check_targets(form, admin)
        assert not _check_targets(form, teacher)
        assert form.target_class_ids.errors

    data = dict(ANNOUNCEMENT, target_audience=ORANGTUA, target_class_ids='c1')
    with app.test_request_context(method='POST', data=data):
        form = AnnouncementForm()
        form.target_class_ids.choices = [('c1', '4A')]
        assert form.validate()
        assert _check_targets(form, teacher)

    with app.test_request_context(method='POST', data=dict(ANNOUNCEMENT, target_audience=SISWA)):
        form = AnnouncementForm()
        assert form.validate()
        assert _check_targets(form, teacher)
