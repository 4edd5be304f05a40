import logging

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort, current_app
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import AnnouncementForm
from educentral.pagination import paginate
from educentral.roles import ADMIN, GURU, ORANGTUA
from educentral.services import notifications
from educentral.services.scope import TeacherScope, visible_classes, class_choices

logger = logging.getLogger(__name__)

bp = Blueprint('announcements', __name__, url_prefix='/announcements')


def is_visible(announcement, user, teacher_class_ids=()):
    if user.role == ADMIN:
        return True
    audience = announcement.get('targetAudience') or []
    target_classes = announcement.get('targetClassIds') or []
    if user.role == GURU:
        if announcement.get('createdById') == user.uid:
            return True
        if target_classes and set(target_classes) & set(teacher_class_ids):
            return True
        return GURU in audience and not target_classes
    if user.role not in audience:
        return False
    return not target_classes or user.class_id in target_classes


def visible_announcements(user):
    teacher_class_ids = TeacherScope(user).class_ids if user.role == GURU else ()
    return [a for a in dao.get_all_announcements() if is_visible(a, user, teacher_class_ids)]


def _can_edit(announcement, user):
    return user.role == ADMIN or announcement.get('createdById') == user.uid


def _prepare_form(form, user):
    form.target_class_ids.choices = class_choices(visible_classes(user))


def _check_targets(form, user):
    if (user.role == GURU and ORANGTUA in (form.target_audience.data or [])
            and not form.target_class_ids.data):
        form.target_class_ids.errors.append('Pilih kelas tujuan untuk pengumuman kepada orang tua.')
        return False
    return True


def _form_data(form, user):
    class_ids = form.target_class_ids.data or []
    if user.role == GURU:
        allowed = {c for c, _ in form.target_class_ids.choices}
        class_ids = [c for c in class_ids if c in allowed]
    return {
        'title': form.title.data.strip(),
        'content': form.content.data.strip(),
        'targetAudience': form.target_audience.data,
        'targetClassIds': class_ids,
    }


@bp.route('/')
@auth_required
def list_announcements():
    user = get_current_user()
    page = paginate(visible_announcements(user), request.args.get('page', 1, type=int),
                    current_app.config.get('ITEMS_PER_PAGE', 10))
    classes = {c['id']: c.get('name') for c in dao.get_all_classes()}
    return render_template('announcements/list.html', page=page, class_names=classes,
                           can_edit=lambda a: _can_edit(a, user))


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def new_announcement():
    user = get_current_user()
    form = AnnouncementForm()
    _prepare_form(form, user)
    if form.validate_on_submit() and _check_targets(form, user):
        data = _form_data(form, user)
        data.update({'createdById': user.uid, 'createdByName': user.display_name})
        try:
            announcement_id = dao.create_announcement(data)
            sent = notifications.notify_announcement(data, user)
        except GoogleAPIError:
            logger.exception('Creating announcement failed')
            flash('Gagal menyimpan pengumuman.', 'danger')
        else:
            logger.info('Announcement %s created by %s, %d notified', announcement_id, user.uid, sent)
            flash('Pengumuman berhasil dibuat.', 'success')
            return redirect(url_for('announcements.list_announcements'))
    return render_template('announcements/form.html', form=form, title='Buat Pengumuman')


@bp.route('/<announcement_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def edit_announcement(announcement_id):
    user = get_current_user()
    announcement = dao.get_announcement(announcement_id)
    if not announcement:
        abort(404)
    if not _can_edit(announcement, user):
        abort(403)

    form = AnnouncementForm()
    _prepare_form(form, user)
    if request.method == 'GET':
        form.title.data = announcement.get('title')
        form.content.data = announcement.get('content')
        form.target_audience.data = announcement.get('targetAudience') or []
        form.target_class_ids.data = announcement.get('targetClassIds') or []

    if form.validate_on_submit() and _check_targets(form, user):
        try:
            dao.update_announcement(announcement_id, _form_data(form, user))
        except GoogleAPIError:
            logger.exception('Updating announcement %s failed', announcement_id)
            flash('Gagal memperbarui pengumuman.', 'danger')
        else:
            flash('Pengumuman berhasil diperbarui.', 'success')
            return redirect(url_for('announcements.list_announcements'))
    return render_template('announcements/form.html', form=form, title='Ubah Pengumuman')


@bp.route('/<announcement_id>/delete', methods=['POST'])
@role_required(ADMIN, GURU)
def delete_announcement(announcement_id):
    user = get_current_user()
    announcement = dao.get_announcement(announcement_id)
    if not announcement:
        abort(404)
    if not _can_edit(announcement, user):
        abort(403)
    dao.delete_announcement(announcement_id)
    flash('Pengumuman dihapus.', 'success')
    return redirect(url_for('announcements.list_announcements'))
