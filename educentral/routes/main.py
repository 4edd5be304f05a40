from flask import Blueprint, render_template, redirect, url_for, jsonify

from educentral.decorators import auth_required, get_current_user
from educentral import firestore_dao as dao
from educentral.roles import SISWA, GURU
from educentral.routes.announcements import visible_announcements

bp = Blueprint('main', __name__)


@bp.route('/')
def index():
    if get_current_user().is_authenticated:
        return redirect(url_for('main.dashboard'))
    return redirect(url_for('auth.login'))


@bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


@bp.route('/dashboard')
@auth_required
def dashboard():
    user = get_current_user()
    stats = {
        'students': dao.count_users_by_role(SISWA),
        'teachers': dao.count_users_by_role(GURU),
        'subjects': dao.count_subjects(),
        'classes': dao.count_classes(),
    }
    announcements = visible_announcements(user)[:3]
    return render_template('main/dashboard.html', stats=stats, announcements=announcements,
                           unread=dao.count_unread(user.uid))
