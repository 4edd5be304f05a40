from flask import Blueprint, render_template, redirect, url_for, flash, request, abort

from educentral.decorators import auth_required, get_current_user
from educentral import firestore_dao as dao
from educentral.services.notifications import FILTERS

bp = Blueprint('notifications', __name__, url_prefix='/notifications')


@bp.route('/')
@auth_required
def list_notifications():
    user = get_current_user()
    active = request.args.get('filter', 'all')
    if active not in FILTERS:
        active = 'all'
    items = dao.get_notifications(user.uid, types=FILTERS[active])
    return render_template('notifications/list.html', notifications=items, active=active,
                           filters=FILTERS)


@bp.route('/<notif_id>/open')
@auth_required
def open_notification(notif_id):
    user = get_current_user()
    notification = dao.get_notification(notif_id)
    if not notification or notification.get('userId') != user.uid:
        abort(404)
    if not notification.get('read'):
        dao.mark_read(notif_id)
    href = notification.get('href') or ''
    # Only follow in-app paths
    if href.startswith('/') and not href.startswith('//'):
        return redirect(href)
    return redirect(url_for('notifications.list_notifications'))


@bp.route('/read-all', methods=['POST'])
@auth_required
def mark_all_read():
    count = dao.mark_all_read(get_current_user().uid)
    flash(f'{count} notifikasi ditandai sudah dibaca.' if count else 'Tidak ada notifikasi baru.', 'success')
    return redirect(url_for('notifications.list_notifications'))
