import logging

from firebase_admin.exceptions import FirebaseError
from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.errors import NotFoundError, ValidationFailed
from educentral.forms import StudentForm
from educentral.roles import ADMIN, GURU, SISWA
from educentral.services import user_admin
from educentral.services.exports import download_response, export_stamp, safe_filename_part
from educentral.services.scope import TeacherScope, class_choices

logger = logging.getLogger(__name__)

bp = Blueprint('students', __name__, url_prefix='/students')

EXPORT_HEADERS = ['No.', 'Nama Siswa', 'NIS', 'Email', 'Kelas', 'Orang Tua', 'No. Absen']


def _classes_for(user):
    if user.role == GURU:
        return dao.get_classes_by_ids(TeacherScope(user).homeroom_class_ids)
    return dao.get_all_classes()


def _students_for(user, class_id=''):
    classes = _classes_for(user)
    allowed = [c['id'] for c in classes]
    if class_id:
        if class_id not in allowed:
            abort(403)
        return classes, dao.get_students_by_class(class_id)
    if user.role == ADMIN:
        return classes, dao.sort_students(dao.get_users_by_role(SISWA))
    return classes, dao.get_students_by_classes(allowed)


def export_rows(students):
    return [
        [i, s.get('name'), s.get('nis'), s.get('email'), s.get('className'), s.get('parentName'),
         s.get('attendanceNumber')]
        for i, s in enumerate(students, start=1)
    ]


@bp.route('/')
@role_required(ADMIN, GURU)
def list_students():
    user = get_current_user()
    class_id = request.args.get('class_id', '')
    classes, students = _students_for(user, class_id)
    search = request.args.get('q', '').strip().lower()
    if search:
        students = [s for s in students if search in (s.get('name') or '').lower()
                    or search in (s.get('nis') or '').lower()]
    return render_template('students/list.html', students=students, classes=classes,
                           class_filter=class_id, search=search)


@bp.route('/export/<fmt>')
@role_required(ADMIN, GURU)
def export_students(fmt):
    user = get_current_user()
    class_id = request.args.get('class_id', '')
    _, students = _students_for(user, class_id)
    school_class = dao.get_class(class_id) if class_id else None
    label = school_class.get('name') if school_class else 'Semua Kelas'
    filename = f'Data_Siswa_{safe_filename_part(label)}_{export_stamp()}'
    return download_response(fmt, filename, 'Data Siswa', EXPORT_HEADERS, export_rows(students),
                             subtitle=f'Kelas: {label}')


def _prepare_form(form):
    form.class_id.choices = class_choices(dao.get_all_classes(), blank='- Pilih Kelas -')
    form.linked_parent_id.choices = [('', '- Belum ada -')] + [
        (p['id'], p.get('name')) for p in dao.get_all_parents()
    ]


def _form_data(form):
    school_class = dao.get_class(form.class_id.data)
    parent = dao.get_parent(form.linked_parent_id.data) if form.linked_parent_id.data else None
    return {
        'name': form.name.data.strip(),
        'nis': form.nis.data.strip(),
        'email': form.email.data or None,
        'role': SISWA,
        'classId': form.class_id.data,
        'className': school_class.get('name') if school_class else None,
        'attendanceNumber': form.attendance_number.data,
        'dateOfBirth': dao.start_of_day(form.date_of_birth.data) if form.date_of_birth.data else None,
        'gender': form.gender.data or None,
        'agama': form.agama.data or None,
        'address': form.address.data or '',
        'linkedParentId': parent['id'] if parent else None,
        'parentName': parent.get('name') if parent else None,
    }


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_student():
    form = StudentForm()
    _prepare_form(form)
    if form.validate_on_submit():
        student_id = dao.add_user_record(_form_data(form))
        logger.info('Student record %s created', student_id)
        flash('Data siswa berhasil ditambahkan.', 'success')
        return redirect(url_for('students.list_students'))
    return render_template('students/form.html', form=form, title='Tambah Siswa')


@bp.route('/<student_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_student(student_id):
    student = dao.get_user(student_id)
    if not student or student.get('role') != SISWA:
        abort(404)
    form = StudentForm()
    _prepare_form(form)
    if request.method == 'GET':
        form.name.data = student.get('name')
        form.nis.data = student.get('nis')
        form.email.data = student.get('email')
        form.class_id.data = student.get('classId')
        form.attendance_number.data = student.get('attendanceNumber')
        form.gender.data = student.get('gender') or ''
        form.agama.data = student.get('agama') or ''
        form.address.data = student.get('address')
        form.linked_parent_id.data = student.get('linkedParentId') or ''
        if student.get('dateOfBirth'):
            form.date_of_birth.data = student['dateOfBirth'].date()
    if form.validate_on_submit():
        dao.update_user(student_id, _form_data(form))
        flash('Data siswa berhasil diperbarui.', 'success')
        return redirect(url_for('students.list_students'))
    return render_template('students/form.html', form=form, title='Ubah Siswa')


@bp.route('/<student_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_student(student_id):
    try:
        user_admin.delete_user(student_id, current_uid=get_current_user().uid)
    except NotFoundError:
        abort(404)
    except (ValidationFailed, FirebaseError) as e:
        logger.exception('Deleting student %s failed', student_id)
        flash(f'Gagal menghapus siswa: {e}', 'danger')
    else:
        flash('Data siswa dihapus.', 'success')
    return redirect(url_for('students.list_students'))
