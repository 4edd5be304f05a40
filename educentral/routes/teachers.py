import logging

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import role_required
from educentral import firestore_dao as dao
from educentral.forms import TeacherForm
from educentral.roles import ADMIN
from educentral.services.exports import download_response, export_stamp

logger = logging.getLogger(__name__)

bp = Blueprint('teachers', __name__, url_prefix='/teachers')

EXPORT_HEADERS = ['No.', 'Nama', 'NIP', 'Email', 'Mapel Utama', 'UID Akun']


def export_rows(teachers):
    return [
        [i, t.get('name'), t.get('nip'), t.get('email'), t.get('subject'), t.get('uid') or 'Belum tertaut']
        for i, t in enumerate(teachers, start=1)
    ]


def _form_data(form):
    return {
        'name': form.name.data.strip(),
        'email': form.email.data.strip(),
        'subject': form.subject.data,
        'nip': form.nip.data or '',
        'phone': form.phone.data or '',
        'address': form.address.data or '',
        'gender': form.gender.data or None,
        'agama': form.agama.data or None,
    }


@bp.route('/')
@role_required(ADMIN)
def list_teachers():
    search = request.args.get('q', '').strip().lower()
    teachers = dao.get_all_teachers()
    if search:
        teachers = [t for t in teachers if search in (t.get('name') or '').lower()
                    or search in (t.get('nip') or '').lower()]
    return render_template('teachers/list.html', teachers=teachers, search=search)


@bp.route('/export/<fmt>')
@role_required(ADMIN)
def export_teachers(fmt):
    return download_response(fmt, f'Data_Guru_{export_stamp()}', 'Data Guru',
                             EXPORT_HEADERS, export_rows(dao.get_all_teachers()))


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_teacher():
    form = TeacherForm()
    if form.validate_on_submit():
        teacher_id = dao.create_teacher(_form_data(form))
        logger.info('Teacher profile %s created', teacher_id)
        flash('Data guru berhasil ditambahkan.', 'success')
        return redirect(url_for('teachers.list_teachers'))
    return render_template('teachers/form.html', form=form, title='Tambah Guru', editing=False)


@bp.route('/<teacher_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_teacher(teacher_id):
    teacher = dao.get_teacher(teacher_id)
    if not teacher:
        abort(404)
    form = TeacherForm()
    if request.method == 'GET':
        for field in ('name', 'email', 'subject', 'nip', 'phone', 'address', 'gender', 'agama', 'uid'):
            getattr(form, field).data = teacher.get(field) or ''
    if form.validate_on_submit():
        data = _form_data(form)
        # An empty UID unlinks the profile from its login account
        data['uid'] = (form.uid.data or '').strip() or None
        dao.update_teacher(teacher_id, data)
        flash('Data guru berhasil diperbarui.', 'success')
        return redirect(url_for('teachers.list_teachers'))
    return render_template('teachers/form.html', form=form, title='Ubah Guru', editing=True)


@bp.route('/<teacher_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_teacher(teacher_id):
    teacher = dao.get_teacher(teacher_id)
    if not teacher:
        abort(404)
    if teacher.get('uid'):
        flash('Profil guru masih tertaut ke akun. Hapus akunnya melalui Administrasi Pengguna.', 'warning')
        return redirect(url_for('teachers.list_teachers'))
    dao.delete_teacher(teacher_id)
    logger.info('Teacher profile %s deleted', teacher_id)
    flash('Data guru dihapus.', 'success')
    return redirect(url_for('teachers.list_teachers'))
