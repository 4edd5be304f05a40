import logging
from datetime import date

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort, current_app, jsonify
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.errors import UploadError
from educentral.forms import ActivityForm, MediaUploadForm
from educentral.roles import ADMIN
from educentral.services.storage import upload_activity_image, delete_file

logger = logging.getLogger(__name__)

bp = Blueprint('activities', __name__, url_prefix='/activities')


@bp.route('/')
@auth_required
def list_activities():
    activities = dao.get_all_activities()
    for activity in activities:
        media = dao.get_activity_media(activity['id'])
        activity['cover'] = media[0]['url'] if media else None
        activity['mediaCount'] = len(media)
    return render_template('activities/list.html', activities=activities)


@bp.route('/<activity_id>')
@auth_required
def view_activity(activity_id):
    activity = dao.get_activity(activity_id)
    if not activity:
        abort(404)
    return render_template('activities/detail.html', activity=activity,
                           media=dao.get_activity_media(activity_id), form=MediaUploadForm())


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN)
def new_activity():
    user = get_current_user()
    form = ActivityForm()
    if form.validate_on_submit():
        activity_id = dao.create_activity({
            'title': form.title.data.strip(),
            'description': form.description.data or '',
            'date': form.date.data.isoformat(),
            'createdById': user.uid,
        })
        flash('Kegiatan dibuat. Silakan unggah foto kegiatan.', 'success')
        return redirect(url_for('activities.view_activity', activity_id=activity_id))
    if request.method == 'GET':
        form.date.data = date.today()
    return render_template('activities/form.html', form=form, title='Tambah Kegiatan')


def _upload_failed(message, wants_json, activity_id, status=400):
    if wants_json:
        return jsonify({'error': message}), status
    flash(message, 'danger')
    return redirect(url_for('activities.view_activity', activity_id=activity_id))


@bp.route('/<activity_id>/upload', methods=['POST'])
@role_required(ADMIN)
def upload_media(activity_id):
    """Upload one image and return its public URL.

    Answers JSON to XHR callers and redirects back to the gallery otherwise.
    """
    wants_json = request.accept_mimetypes.best == 'application/json'
    if not dao.get_activity(activity_id):
        abort(404)

    form = MediaUploadForm()
    if not form.validate_on_submit():
        message = next(iter(form.errors.values()), ['Unggahan tidak valid.'])[0]
        return _upload_failed(message, wants_json, activity_id)

    try:
        url, path = upload_activity_image(activity_id, form.image.data,
                                          max_size=current_app.config.get('MAX_UPLOAD_SIZE'))
    except UploadError as e:
        return _upload_failed(str(e), wants_json, activity_id)
    except GoogleAPIError:
        logger.exception('Uploading media for activity %s failed', activity_id)
        return _upload_failed('Gagal mengunggah foto.', wants_json, activity_id, status=500)

    try:
        media_id = dao.add_activity_media(activity_id, {
            'url': url,
            'storagePath': path,
            'caption': form.caption.data or '',
            'uploadedById': get_current_user().uid,
        })
    except GoogleAPIError:
        logger.exception('Saving media of activity %s failed, removing %s', activity_id, path)
        try:
            delete_file(path)
        except GoogleAPIError:
            logger.exception('Could not remove orphaned file %s', path)
        return _upload_failed('Gagal menyimpan foto.', wants_json, activity_id, status=500)

    logger.info('Activity %s media %s uploaded', activity_id, media_id)
    if wants_json:
        return jsonify({'id': media_id, 'url': url})
    flash('Foto berhasil diunggah.', 'success')
    return redirect(url_for('activities.view_activity', activity_id=activity_id))


@bp.route('/<activity_id>/media/<media_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_media(activity_id, media_id):
    media = dao.get_activity_media_item(activity_id, media_id)
    if not media:
        abort(404)
    try:
        if media.get('storagePath'):
            delete_file(media['storagePath'])
        dao.delete_activity_media(activity_id, media_id)
    except GoogleAPIError:
        logger.exception('Deleting media %s of activity %s failed', media_id, activity_id)
        flash('Gagal menghapus foto.', 'danger')
    else:
        flash('Foto dihapus.', 'success')
    return redirect(url_for('activities.view_activity', activity_id=activity_id))


@bp.route('/<activity_id>/delete', methods=['POST'])
@role_required(ADMIN)
def delete_activity(activity_id):
    if not dao.get_activity(activity_id):
        abort(404)
    try:
        paths = dao.delete_activity(activity_id)
    except GoogleAPIError:
        logger.exception('Deleting activity %s failed', activity_id)
        flash('Gagal menghapus kegiatan.', 'danger')
        return redirect(url_for('activities.view_activity', activity_id=activity_id))
    for path in paths:
        try:
            delete_file(path)
        except GoogleAPIError:
            logger.exception('Could not remove %s of deleted activity %s', path, activity_id)
    logger.info('Activity %s deleted with %d files', activity_id, len(paths))
    flash('Kegiatan dan seluruh fotonya dihapus.', 'success')
    return redirect(url_for('activities.list_activities'))
