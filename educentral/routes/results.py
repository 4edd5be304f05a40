import logging

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import ResultForm
from educentral.roles import ADMIN, GURU
from educentral.services.exports import download_response, export_stamp
from educentral.services.scope import visible_classes, visible_subjects

logger = logging.getLogger(__name__)

bp = Blueprint('results', __name__, url_prefix='/results')

EXPORT_HEADERS = ['No.', 'Siswa', 'Kelas', 'Mata Pelajaran', 'Penilaian', 'Jenis', 'Tanggal',
                  'Nilai', 'Nilai Maks.', 'Predikat']


def _filtered_results(user, class_id='', subject_id=''):
    results = dao.get_all_results()
    if user.role == GURU:
        allowed = {c['id'] for c in visible_classes(user)}
        results = [r for r in results if r.get('classId') in allowed or r.get('recordedById') == user.uid]
    if class_id:
        results = [r for r in results if r.get('classId') == class_id]
    if subject_id:
        results = [r for r in results if r.get('subjectId') == subject_id]
    return results


@bp.route('/')
@auth_required
def list_results():
    user = get_current_user()
    if user.role not in (ADMIN, GURU):
        return redirect(url_for('grades.my_grades'))
    class_id = request.args.get('class_id', '')
    subject_id = request.args.get('subject_id', '')
    return render_template('results/list.html',
                           results=_filtered_results(user, class_id, subject_id),
                           classes=visible_classes(user), subjects=visible_subjects(user),
                           class_filter=class_id, subject_filter=subject_id)


@bp.route('/export/<fmt>')
@role_required(ADMIN, GURU)
def export_results(fmt):
    user = get_current_user()
    class_id = request.args.get('class_id', '')
    results = _filtered_results(user, class_id, request.args.get('subject_id', ''))
    rows = [
        [i, r.get('studentName'), r.get('className'), r.get('subjectName'), r.get('assessmentTitle'),
         r.get('assessmentType'), r.get('dateOfAssessment'), r.get('score'), r.get('maxScore'),
         r.get('grade')]
        for i, r in enumerate(results, start=1)
    ]
    school_class = dao.get_class(class_id) if class_id else None
    label = school_class.get('name') if school_class else 'Semua Kelas'
    return download_response(fmt, f'Hasil_Penilaian_{export_stamp()}',
                             'Rekap Hasil Penilaian', EXPORT_HEADERS, rows,
                             subtitle=f'Kelas: {label}')


def _prepare_form(form, user):
    classes = visible_classes(user)
    students = dao.get_students_by_classes([c['id'] for c in classes])
    form.student_id.choices = [('', '- Pilih Siswa -')] + [
        (s['id'], f"{s.get('name')} ({s.get('className') or '-'})") for s in students
    ]
    form.subject_id.choices = [('', '- Pilih Mata Pelajaran -')] + [
        (s['id'], s.get('name')) for s in visible_subjects(user)
    ]
    assignments = dao.get_assignments_by_classes([c['id'] for c in classes])
    form.assignment_id.choices = [('', '- Tidak terkait tugas -')] + [
        (a['id'], f"{a.get('title')} ({a.get('className') or '-'})") for a in assignments
    ]
    return {s['id']: s for s in students}


def _form_data(form, students, user):
    student = students.get(form.student_id.data)
    subject = dao.get_subject(form.subject_id.data)
    return {
        'studentId': student['id'],
        'studentName': student.get('name'),
        'classId': student.get('classId'),
        'className': student.get('className'),
        'subjectId': form.subject_id.data,
        'subjectName': subject.get('name') if subject else None,
        'assignmentId': form.assignment_id.data or None,
        'assessmentTitle': form.assessment_title.data.strip(),
        'assessmentType': form.assessment_type.data,
        'score': form.score.data,
        'maxScore': form.max_score.data or 100,
        'grade': (form.grade.data or '').strip() or None,
        'dateOfAssessment': dao.start_of_day(form.date_of_assessment.data),
        'notes': form.notes.data or '',
        'recordedById': user.uid,
        'recordedByName': user.display_name,
    }


def _valid_student(form, students):
    if form.student_id.data not in students:
        form.student_id.errors.append('Siswa tidak valid.')
        return False
    return True


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def new_result():
    user = get_current_user()
    form = ResultForm()
    students = _prepare_form(form, user)
    if request.method == 'GET':
        form.assignment_id.data = request.args.get('assignment_id', '')
        form.student_id.data = request.args.get('student_id', '')
    if form.validate_on_submit() and _valid_student(form, students):
        try:
            dao.create_result(_form_data(form, students, user))
        except GoogleAPIError:
            logger.exception('Saving result failed')
            flash('Gagal menyimpan nilai.', 'danger')
        else:
            flash('Nilai berhasil disimpan.', 'success')
            return redirect(url_for('results.list_results'))
    return render_template('results/form.html', form=form, title='Input Nilai')


@bp.route('/<result_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def edit_result(result_id):
    user = get_current_user()
    result = dao.get_result(result_id)
    if not result:
        abort(404)
    form = ResultForm()
    students = _prepare_form(form, user)
    if result.get('studentId') not in students:
        abort(403)
    if request.method == 'GET':
        form.student_id.data = result.get('studentId')
        form.subject_id.data = result.get('subjectId')
        form.assignment_id.data = result.get('assignmentId') or ''
        form.assessment_title.data = result.get('assessmentTitle')
        form.assessment_type.data = result.get('assessmentType')
        form.score.data = result.get('score')
        form.max_score.data = result.get('maxScore')
        form.grade.data = result.get('grade')
        form.notes.data = result.get('notes')
        if result.get('dateOfAssessment'):
            form.date_of_assessment.data = result['dateOfAssessment'].date()
    if form.validate_on_submit() and _valid_student(form, students):
        try:
            dao.update_result(result_id, _form_data(form, students, user))
        except GoogleAPIError:
            logger.exception('Updating result %s failed', result_id)
            flash('Gagal memperbarui nilai.', 'danger')
        else:
            flash('Nilai berhasil diperbarui.', 'success')
            return redirect(url_for('results.list_results'))
    return render_template('results/form.html', form=form, title='Ubah Nilai')


@bp.route('/<result_id>/delete', methods=['POST'])
@role_required(ADMIN, GURU)
def delete_result(result_id):
    user = get_current_user()
    result = dao.get_result(result_id)
    if not result:
        abort(404)
    if user.role == GURU and result.get('classId') not in {c['id'] for c in visible_classes(user)}:
        abort(403)
    dao.delete_result(result_id)
    flash('Nilai dihapus.', 'success')
    return redirect(url_for('results.list_results'))
