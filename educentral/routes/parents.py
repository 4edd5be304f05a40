from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import ParentForm
from educentral.roles import ADMIN, GURU, SISWA
from educentral.services.scope import TeacherScope

bp = Blueprint('parents', __name__, url_prefix='/parents')


def _form_data(form):
    student = dao.get_user(form.student_id.data)
    return {
        'name': form.name.data.strip(),
        'email': form.email.data or None,
        'phone': form.phone.data or '',
        'studentId': student['id'] if student else None,
        'studentName': student.get('name') if student else None,
    }


def _student_choices():
    students = dao.sort_students(dao.get_users_by_role(SISWA))
    return [('', '- Pilih Siswa -')] + [
        (s['id'], f"{s.get('name')} ({s.get('className') or '-'})") for s in students
    ]


@bp.route('/')
@role_required(ADMIN, GURU)
def list_parents():
    user = get_current_user()
    parents = dao.get_all_parents()
    if user.role == GURU:
        students = dao.get_students_by_classes(TeacherScope(user).class_ids)
        student_ids = {s['id'] for s in students}
        parents = [p for p in parents if p.get('studentId') in student_ids]
    return render_template('parents/list.html', parents=parents)


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_parent():
    form = ParentForm()
    form.student_id.choices = _student_choices()
    if form.validate_on_submit():
        dao.create_parent(_form_data(form))
        flash('Data orang tua berhasil ditambahkan.', 'success')
        return redirect(url_for('parents.list_parents'))
    return render_template('parents/form.html', form=form, title='Tambah Orang Tua')


@bp.route('/<parent_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_parent(parent_id):
    parent = dao.get_parent(parent_id)
    if not parent:
        abort(404)
    form = ParentForm()
    form.student_id.choices = _student_choices()
    if request.method == 'GET':
        form.name.data = parent.get('name')
        form.email.data = parent.get('email')
        form.phone.data = parent.get('phone')
        form.student_id.data = parent.get('studentId') or ''
    if form.validate_on_submit():
        dao.update_parent(parent_id, _form_data(form))
        flash('Data orang tua berhasil diperbarui.', 'success')
        return redirect(url_for('parents.list_parents'))
    return render_template('parents/form.html', form=form, title='Ubah Orang Tua')


@bp.route('/<parent_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_parent(parent_id):
    parent = dao.get_parent(parent_id)
    if not parent:
        abort(404)
    if parent.get('uid'):
        flash('Profil orang tua masih tertaut ke akun. Hapus akunnya melalui Administrasi Pengguna.', 'warning')
        return redirect(url_for('parents.list_parents'))
    dao.delete_parent(parent_id)
    flash('Data orang tua dihapus.', 'success')
    return redirect(url_for('parents.list_parents'))
