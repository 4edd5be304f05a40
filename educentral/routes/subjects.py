from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import SubjectForm
from educentral.roles import ADMIN, GURU

bp = Blueprint('subjects', __name__, url_prefix='/subjects')


def _teacher_account_choices():
    return [('', '- Belum ditentukan -')] + [
        (u['id'], u.get('name')) for u in dao.get_users_by_role(GURU)
    ]


@bp.route('/')
@role_required(ADMIN, GURU)
def list_subjects():
    user = get_current_user()
    if user.role == GURU:
        subjects = dao.get_subjects_by_teacher_uid(user.uid)
    else:
        subjects = dao.get_all_subjects()
    teacher_names = {u['id']: u.get('name') for u in dao.get_users_by_role(GURU)}
    return render_template('subjects/list.html', subjects=subjects, teacher_names=teacher_names)


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_subject():
    form = SubjectForm()
    form.teacher_uid.choices = _teacher_account_choices()
    if form.validate_on_submit():
        dao.create_subject({
            'name': form.name.data.strip(),
            'description': form.description.data or '',
            'teacherUid': form.teacher_uid.data or None,
        })
        flash('Mata pelajaran berhasil ditambahkan.', 'success')
        return redirect(url_for('subjects.list_subjects'))
    return render_template('subjects/form.html', form=form, title='Tambah Mata Pelajaran')


@bp.route('/<subject_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_subject(subject_id):
    subject = dao.get_subject(subject_id)
    if not subject:
        abort(404)
    form = SubjectForm()
    form.teacher_uid.choices = _teacher_account_choices()
    if request.method == 'GET':
        form.name.data = subject.get('name')
        form.description.data = subject.get('description')
        form.teacher_uid.data = subject.get('teacherUid') or ''
    if form.validate_on_submit():
        dao.update_subject(subject_id, {
            'name': form.name.data.strip(),
            'description': form.description.data or '',
            'teacherUid': form.teacher_uid.data or None,
        })
        flash('Mata pelajaran berhasil diperbarui.', 'success')
        return redirect(url_for('subjects.list_subjects'))
    return render_template('subjects/form.html', form=form, title='Ubah Mata Pelajaran')


@bp.route('/<subject_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_subject(subject_id):
    if not dao.get_subject(subject_id):
        abort(404)
    dao.delete_subject(subject_id)
    flash('Mata pelajaran dihapus.', 'success')
    return redirect(url_for('subjects.list_subjects'))
