import logging

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import ClassForm
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA
from educentral.services.scope import TeacherScope, visible_classes

logger = logging.getLogger(__name__)

bp = Blueprint('classes', __name__, url_prefix='/classes')


def _teacher_choices():
    return [('', '- Tanpa Wali Kelas -')] + [(t['id'], t.get('name')) for t in dao.get_all_teachers()]


def _form_data(form):
    teacher = dao.get_teacher(form.teacher_id.data) if form.teacher_id.data else None
    return {
        'name': form.name.data.strip(),
        'teacherId': teacher['id'] if teacher else None,
        'teacherName': teacher.get('name') if teacher else None,
    }


@bp.route('/')
@role_required(ADMIN, GURU, ORANGTUA)
def list_classes():
    user = get_current_user()
    classes = visible_classes(user)
    homeroom_ids = TeacherScope(user).homeroom_class_ids if user.role == GURU else []
    return render_template('classes/list.html', classes=classes, homeroom_ids=homeroom_ids)


@bp.route('/<class_id>')
@role_required(ADMIN, GURU, ORANGTUA)
def view_class(class_id):
    user = get_current_user()
    if class_id not in {c['id'] for c in visible_classes(user)}:
        abort(403)
    school_class = dao.get_class(class_id)
    if not school_class:
        abort(404)
    return render_template('classes/detail.html', school_class=school_class,
                           students=dao.get_students_by_class(class_id),
                           lessons=dao.get_lessons_by_class(class_id))


@bp.route('/mine')
@role_required(SISWA)
def my_class():
    user = get_current_user()
    school_class = dao.get_class(user.class_id) if user.class_id else None
    classmates = dao.get_students_by_class(user.class_id) if school_class else []
    homeroom = dao.get_teacher(school_class.get('teacherId')) if school_class else None
    return render_template('classes/my_class.html', school_class=school_class,
                           classmates=classmates, homeroom=homeroom)


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_class():
    form = ClassForm()
    form.teacher_id.choices = _teacher_choices()
    if form.validate_on_submit():
        class_id = dao.create_class(_form_data(form))
        logger.info('Class %s created', class_id)
        flash('Kelas berhasil ditambahkan.', 'success')
        return redirect(url_for('classes.list_classes'))
    return render_template('classes/form.html', form=form, title='Tambah Kelas')


@bp.route('/<class_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_class(class_id):
    school_class = dao.get_class(class_id)
    if not school_class:
        abort(404)
    form = ClassForm()
    form.teacher_id.choices = _teacher_choices()
    if request.method == 'GET':
        form.name.data = school_class.get('name')
        form.teacher_id.data = school_class.get('teacherId') or ''
    if form.validate_on_submit():
        dao.update_class(class_id, _form_data(form))
        flash('Kelas berhasil diperbarui.', 'success')
        return redirect(url_for('classes.list_classes'))
    return render_template('classes/form.html', form=form, title='Ubah Kelas')


@bp.route('/<class_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_class(class_id):
    if not dao.get_class(class_id):
        abort(404)
    if dao.get_students_by_class(class_id):
        flash('Kelas masih memiliki siswa. Pindahkan siswa terlebih dahulu.', 'warning')
        return redirect(url_for('classes.list_classes'))
    dao.delete_class(class_id)
    logger.info('Class %s deleted', class_id)
    flash('Kelas dihapus.', 'success')
    return redirect(url_for('classes.list_classes'))
