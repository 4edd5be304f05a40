import logging
from datetime import date

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.roles import ADMIN, GURU
from educentral.services import attendance
from educentral.services.scope import visible_classes, can_manage_class

logger = logging.getLogger(__name__)

bp = Blueprint('attendance', __name__, url_prefix='/attendance')


def _selected_date(value):
    try:
        return date.fromisoformat(value).isoformat() if value else date.today().isoformat()
    except ValueError:
        return date.today().isoformat()


@bp.route('/')
@auth_required
def index():
    user = get_current_user()
    if user.role not in (ADMIN, GURU):
        history, totals = [], {}
        if user.student_id and user.class_id:
            history, totals = attendance.student_history(user.student_id, user.class_id)
        return render_template('attendance/history.html', history=history, totals=totals,
                               statuses=attendance.STATUSES)

    classes = visible_classes(user)
    class_id = request.args.get('class_id') or (classes[0]['id'] if classes else '')
    date_str = _selected_date(request.args.get('date'))
    rows = []
    sheet = None
    if class_id:
        if class_id not in {c['id'] for c in classes}:
            abort(403)
        sheet = dao.get_attendance(class_id, date_str)
        rows = attendance.merge_roster(dao.get_students_by_class(class_id), sheet)
    return render_template('attendance/index.html', classes=classes, class_id=class_id,
                           date=date_str, rows=rows, sheet=sheet, statuses=attendance.STATUSES)


@bp.route('/save', methods=['POST'])
@role_required(ADMIN, GURU)
def save():
    user = get_current_user()
    class_id = request.form.get('class_id', '')
    date_str = _selected_date(request.form.get('date'))
    school_class = dao.get_class(class_id)
    if not school_class:
        abort(404)
    if not can_manage_class(user, class_id):
        abort(403)

    students = dao.get_students_by_class(class_id)
    entries = attendance.parse_sheet(request.form, students)
    try:
        created = attendance.save_sheet(school_class, date_str, entries, user)
    except GoogleAPIError:
        logger.exception('Saving attendance for %s on %s failed', class_id, date_str)
        flash('Gagal menyimpan kehadiran.', 'danger')
    else:
        logger.info('Attendance for %s on %s %s', class_id, date_str, 'created' if created else 'updated')
        flash('Data kehadiran berhasil disimpan.', 'success')
    return redirect(url_for('attendance.index', class_id=class_id, date=date_str))
