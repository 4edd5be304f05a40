import logging
from datetime import date

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import ExamForm
from educentral.roles import ADMIN, GURU
from educentral.services import notifications
from educentral.services.scope import visible_classes, visible_class_ids, visible_subjects, class_choices

logger = logging.getLogger(__name__)

bp = Blueprint('exams', __name__, url_prefix='/exams')


def _prepare_form(form, user):
    form.class_id.choices = class_choices(visible_classes(user), blank='- Pilih Kelas -')
    form.subject_id.choices = [('', '- Pilih Mata Pelajaran -')] + [
        (s['id'], s.get('name')) for s in visible_subjects(user)
    ]


def _form_data(form):
    school_class = dao.get_class(form.class_id.data)
    subject = dao.get_subject(form.subject_id.data)
    return {
        'title': form.title.data.strip(),
        'classId': form.class_id.data,
        'className': school_class.get('name') if school_class else None,
        'subjectId': form.subject_id.data,
        'subjectName': subject.get('name') if subject else None,
        'date': form.date.data.isoformat(),
        'startTime': form.start_time.data,
        'endTime': form.end_time.data,
        'description': form.description.data or '',
    }


def _valid_class(form):
    if form.class_id.data not in {c for c, _ in form.class_id.choices if c}:
        form.class_id.errors.append('Kelas tidak valid.')
        return False
    return True


def _can_manage(exam, user):
    return user.role == ADMIN or exam.get('classId') in visible_class_ids(user)


@bp.route('/')
@auth_required
def list_exams():
    user = get_current_user()
    if user.role == ADMIN:
        exams = dao.get_all_exams()
    else:
        exams = dao.get_exams_by_classes(visible_class_ids(user))
    today = date.today().isoformat()
    return render_template('exams/list.html', exams=exams, today=today,
                           can_manage=user.role in (ADMIN, GURU))


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def new_exam():
    user = get_current_user()
    form = ExamForm()
    _prepare_form(form, user)
    if form.validate_on_submit() and _valid_class(form):
        data = _form_data(form)
        data['createdById'] = user.uid
        try:
            dao.create_exam(data)
            notifications.notify_exam(data, user.uid)
        except GoogleAPIError:
            logger.exception('Creating exam failed')
            flash('Gagal menyimpan ujian.', 'danger')
        else:
            flash('Jadwal ujian berhasil dibuat.', 'success')
            return redirect(url_for('exams.list_exams'))
    return render_template('exams/form.html', form=form, title='Buat Jadwal Ujian')


@bp.route('/<exam_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def edit_exam(exam_id):
    user = get_current_user()
    exam = dao.get_exam(exam_id)
    if not exam:
        abort(404)
    if not _can_manage(exam, user):
        abort(403)
    form = ExamForm()
    _prepare_form(form, user)
    if request.method == 'GET':
        form.title.data = exam.get('title')
        form.class_id.data = exam.get('classId')
        form.subject_id.data = exam.get('subjectId')
        form.date.data = date.fromisoformat(exam['date']) if exam.get('date') else None
        form.start_time.data = exam.get('startTime')
        form.end_time.data = exam.get('endTime')
        form.description.data = exam.get('description')
    if form.validate_on_submit() and _valid_class(form):
        try:
            dao.update_exam(exam_id, _form_data(form))
        except GoogleAPIError:
            logger.exception('Updating exam %s failed', exam_id)
            flash('Gagal memperbarui ujian.', 'danger')
        else:
            flash('Jadwal ujian berhasil diperbarui.', 'success')
            return redirect(url_for('exams.list_exams'))
    return render_template('exams/form.html', form=form, title='Ubah Jadwal Ujian')


@bp.route('/<exam_id>/delete', methods=['POST'])
@role_required(ADMIN, GURU)
def delete_exam(exam_id):
    user = get_current_user()
    exam = dao.get_exam(exam_id)
    if not exam:
        abort(404)
    if not _can_manage(exam, user):
        abort(403)
    dao.delete_exam(exam_id)
    flash('Jadwal ujian dihapus.', 'success')
    return redirect(url_for('exams.list_exams'))
