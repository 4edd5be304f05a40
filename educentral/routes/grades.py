from flask import Blueprint, render_template

from educentral.decorators import role_required, get_current_user
from educentral.roles import SISWA, ORANGTUA
from educentral.services import grades
from educentral.services.exports import download_response, export_stamp, safe_filename_part

bp = Blueprint('grades', __name__, url_prefix='/my-grades')


def _student_name(user):
    if user.role == ORANGTUA:
        return user.get('linkedStudentName')
    return user.display_name


def _report(user):
    entries = grades.grade_entries(user.student_id, user.class_id)
    exams = grades.standalone_results(user.student_id)
    return entries, exams


@bp.route('/')
@role_required(SISWA, ORANGTUA)
def my_grades():
    user = get_current_user()
    entries, exams = _report(user)
    return render_template('grades/my_grades.html', entries=entries, exams=exams,
                           student_name=_student_name(user),
                           average=grades.average_percentage(entries))


@bp.route('/export/<fmt>')
@role_required(SISWA, ORANGTUA)
def export(fmt):
    user = get_current_user()
    entries, exams = _report(user)
    name = _student_name(user) or 'Siswa'
    filename = f'Hasil_Belajar_{safe_filename_part(name)}_{export_stamp()}'
    return download_response(
        fmt, filename,
        f'Laporan Hasil Belajar - {name}',
        grades.REPORT_HEADERS,
        grades.report_rows(entries, exams),
        subtitle=f'Kelas: {user.class_name or "-"}',
    )
