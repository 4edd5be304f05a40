import logging

from firebase_admin.exceptions import FirebaseError
from flask import Blueprint, render_template, redirect, url_for, flash, request, abort, current_app
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.errors import DuplicateEmailError, NotFoundError, ValidationFailed
from educentral.forms import AddUserForm, EditUserForm
from educentral.pagination import paginate
from educentral.roles import ADMIN, GURU, ROLES
from educentral.services import user_admin
from educentral.services.scope import class_choices

logger = logging.getLogger(__name__)

bp = Blueprint('user_admin', __name__, url_prefix='/user-administration')


def _field_error(form, error):
    field = getattr(form, error.field, None) if error.field else None
    if field is not None:
        field.errors.append(error.message)
    else:
        flash(error.message, 'danger')


def _add_form(options):
    form = AddUserForm(teacher_class_ids=options['teacher_class_ids'])
    form.class_id.choices = class_choices(options['classes'], blank='- Pilih Kelas -')
    form.teacher_profile_id.choices = [('', '- Pilih Guru -')] + [
        (t['id'], f"{t.get('name')} ({t.get('subject') or '-'})") for t in options['teachers']
    ]
    form.parent_profile_id.choices = [('', '- Pilih Orang Tua -')] + [
        (p['id'], f"{p.get('name')} - {p.get('studentName') or 'tanpa anak'}") for p in options['parents']
    ]
    return form


@bp.route('/')
@role_required(ADMIN)
def list_users():
    search = request.args.get('q', '').strip()
    role = request.args.get('role', '')
    users = user_admin.list_users(search, role)
    page = paginate(users, request.args.get('page', 1, type=int),
                    current_app.config.get('ITEMS_PER_PAGE', 10))
    return render_template('user_admin/list.html', page=page, search=search, role=role, roles=ROLES)


@bp.route('/add', methods=['GET', 'POST'])
@role_required(ADMIN)
def add_user():
    options = user_admin.load_form_options()
    form = _add_form(options)

    if form.validate_on_submit():
        try:
            user_admin.add_user(
                role=form.role.data,
                name=form.name.data,
                password=form.password.data,
                email=form.email.data,
                class_id=form.class_id.data,
                teacher_profile_id=form.teacher_profile_id.data,
                parent_profile_id=form.parent_profile_id.data,
                email_domain=current_app.config.get('SCHOOL_EMAIL_DOMAIN', 'sekolah.sch.id'),
            )
        except (DuplicateEmailError, ValidationFailed) as e:
            _field_error(form, e)
        except (ValueError, FirebaseError, GoogleAPIError) as e:
            logger.exception('Adding user failed')
            flash(f'Gagal menambahkan pengguna: {e}', 'danger')
        else:
            flash('Pengguna berhasil ditambahkan.', 'success')
            return redirect(url_for('user_admin.list_users'))

    return render_template('user_admin/add.html', form=form,
                           teacher_class_ids=options['teacher_class_ids'],
                           class_names={c['id']: c.get('name') for c in options['classes']})


@bp.route('/<uid>/edit', methods=['GET', 'POST'])
@role_required(ADMIN)
def edit_user(uid):
    user = dao.get_user(uid)
    if not user:
        abort(404)

    classes = dao.get_all_classes()
    form = EditUserForm()
    form.class_id.choices = class_choices(classes, blank='- Pilih Kelas -')
    form.assigned_class_ids.choices = class_choices(classes)

    if request.method == 'GET':
        form.name.data = user.get('name')
        form.role.data = user.get('role')
        form.class_id.data = user.get('classId') or ''
        form.assigned_class_ids.data = user.get('assignedClassIds') or []

    if form.validate_on_submit():
        try:
            user_admin.edit_user(
                uid,
                name=form.name.data,
                role=form.role.data,
                class_id=form.class_id.data,
                assigned_class_ids=form.assigned_class_ids.data if form.role.data == GURU else None,
            )
        except ValidationFailed as e:
            _field_error(form, e)
        except NotFoundError:
            abort(404)
        except GoogleAPIError:
            logger.exception('Updating user %s failed', uid)
            flash('Gagal memperbarui pengguna.', 'danger')
        else:
            flash('Data pengguna berhasil diperbarui.', 'success')
            return redirect(url_for('user_admin.list_users'))

    return render_template('user_admin/edit.html', form=form, user=user)


@bp.route('/<uid>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_user(uid):
    try:
        deleted = user_admin.delete_user(uid, current_uid=get_current_user().uid)
    except NotFoundError:
        abort(404)
    except ValidationFailed as e:
        flash(e.message, 'danger')
    except (FirebaseError, GoogleAPIError):
        logger.exception('Deleting user %s failed', uid)
        flash('Gagal menghapus pengguna.', 'danger')
    else:
        flash(f"Pengguna {deleted.get('name') or uid} telah dihapus.", 'success')
    return redirect(url_for('user_admin.list_users'))
