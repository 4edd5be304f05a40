from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import LessonForm
from educentral.roles import ADMIN, GURU
from educentral.services.scope import TeacherScope, class_choices

bp = Blueprint('lessons', __name__, url_prefix='/lessons')


@bp.route('/')
@auth_required
def list_lessons():
    user = get_current_user()
    if user.role == ADMIN:
        lessons = dao.get_all_lessons()
    elif user.role == GURU:
        lessons = TeacherScope(user).lessons
    elif user.class_id:
        lessons = dao.get_lessons_by_class(user.class_id)
    else:
        lessons = []

    day = request.args.get('day', '')
    if day:
        lessons = [lesson for lesson in lessons if lesson.get('dayOfWeek') == day]
    return render_template('lessons/list.html', lessons=lessons, days=dao.DAYS_OF_WEEK, day=day)


def _prepare_form(form):
    form.subject_id.choices = [('', '- Pilih Mata Pelajaran -')] + [
        (s['id'], s.get('name')) for s in dao.get_all_subjects()
    ]
    form.class_id.choices = class_choices(dao.get_all_classes(), blank='- Pilih Kelas -')
    form.teacher_id.choices = [('', '- Pilih Guru -')] + [
        (t['id'], t.get('name')) for t in dao.get_all_teachers()
    ]


def _form_data(form):
    subject = dao.get_subject(form.subject_id.data)
    school_class = dao.get_class(form.class_id.data)
    teacher = dao.get_teacher(form.teacher_id.data)
    missing = [label for label, doc in (('mata pelajaran', subject), ('kelas', school_class),
                                        ('guru', teacher)) if not doc]
    if missing:
        return None, f"Data {', '.join(missing)} tidak ditemukan."
    return {
        'subjectId': subject['id'], 'subjectName': subject.get('name'),
        'classId': school_class['id'], 'className': school_class.get('name'),
        'teacherId': teacher['id'], 'teacherName': teacher.get('name'),
        'dayOfWeek': form.day_of_week.data,
        'startTime': form.start_time.data,
        'endTime': form.end_time.data,
        'topic': form.topic.data or '',
        'materials': form.materials.data or '',
    }, None


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_lesson():
    form = LessonForm()
    _prepare_form(form)
    if form.validate_on_submit():
        data, error = _form_data(form)
        if error:
            flash(error, 'danger')
        else:
            dao.create_lesson(data)
            flash('Jadwal pelajaran berhasil ditambahkan.', 'success')
            return redirect(url_for('lessons.list_lessons'))
    return render_template('lessons/form.html', form=form, title='Tambah Jadwal')


@bp.route('/<lesson_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_lesson(lesson_id):
    lesson = dao.get_lesson(lesson_id)
    if not lesson:
        abort(404)
    form = LessonForm()
    _prepare_form(form)
    if request.method == 'GET':
        form.subject_id.data = lesson.get('subjectId')
        form.class_id.data = lesson.get('classId')
        form.teacher_id.data = lesson.get('teacherId')
        form.day_of_week.data = lesson.get('dayOfWeek')
        form.start_time.data = lesson.get('startTime')
        form.end_time.data = lesson.get('endTime')
        form.topic.data = lesson.get('topic')
        form.materials.data = lesson.get('materials')
    if form.validate_on_submit():
        data, error = _form_data(form)
        if error:
            flash(error, 'danger')
        else:
            dao.update_lesson(lesson_id, data)
            flash('Jadwal pelajaran berhasil diperbarui.', 'success')
            return redirect(url_for('lessons.list_lessons'))
    return render_template('lessons/form.html', form=form, title='Ubah Jadwal')


@bp.route('/<lesson_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_lesson(lesson_id):
    if not dao.get_lesson(lesson_id):
        abort(404)
    dao.delete_lesson(lesson_id)
    flash('Jadwal pelajaran dihapus.', 'success')
    return redirect(url_for('lessons.list_lessons'))
