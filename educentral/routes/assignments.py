import logging
from collections import Counter

from flask import Blueprint, render_template, redirect, url_for, flash, request, abort
from google.api_core.exceptions import GoogleAPIError

from educentral.decorators import auth_required, role_required, get_current_user
from educentral import firestore_dao as dao
from educentral.forms import AssignmentForm, SubmissionForm
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA
from educentral.services import notifications
from educentral.services.grades import submission_status, as_utc, display_title, LATE
from educentral.services.scope import TeacherScope, visible_classes, visible_subjects, class_choices

logger = logging.getLogger(__name__)

bp = Blueprint('assignments', __name__, url_prefix='/assignments')


def _staff_assignments(user):
    if user.role == ADMIN:
        return dao.get_all_assignments()
    scope = TeacherScope(user)
    assignments = dao.get_assignments_by_classes(scope.class_ids)
    subject_ids = set(scope.subject_ids)
    return [a for a in assignments
            if a.get('createdById') == user.uid or not subject_ids or a.get('subjectId') in subject_ids]


def _can_manage(assignment, user):
    if user.role == ADMIN:
        return True
    if user.role != GURU:
        return False
    return (assignment.get('createdById') == user.uid
            or assignment.get('classId') in TeacherScope(user).class_ids)


@bp.route('/')
@auth_required
def list_assignments():
    user = get_current_user()
    class_filter = request.args.get('class_id', '')
    subject_filter = request.args.get('subject_id', '')

    if user.role in (ADMIN, GURU):
        assignments = _staff_assignments(user)
    else:
        assignments = dao.get_assignments_by_class(user.class_id) if user.class_id else []

    if class_filter:
        assignments = [a for a in assignments if a.get('classId') == class_filter]
    if subject_filter:
        assignments = [a for a in assignments if a.get('subjectId') == subject_filter]

    ids = [a['id'] for a in assignments]
    if user.role in (ADMIN, GURU):
        submitted = Counter(s['assignmentId'] for s in dao.get_submissions_for_assignments(ids))
        class_sizes = Counter(s.get('classId') for s in
                              dao.get_students_by_classes([a.get('classId') for a in assignments]))
        for a in assignments:
            a['submittedCount'] = submitted.get(a['id'], 0)
            a['studentCount'] = class_sizes.get(a.get('classId'), 0)
    else:
        own = {s['assignmentId']: s for s in
               dao.get_submissions_for_assignments(ids, student_id=user.student_id)}
        for a in assignments:
            a['submission'] = own.get(a['id'])
            a['status'] = submission_status(a, a['submission'])

    for a in assignments:
        a['displayTitle'] = display_title(a)
    return render_template('assignments/list.html', assignments=assignments,
                           classes=visible_classes(user), subjects=visible_subjects(user),
                           class_filter=class_filter, subject_filter=subject_filter)


def _prepare_form(form, user):
    form.class_id.choices = class_choices(visible_classes(user), blank='- Pilih Kelas -')
    form.subject_id.choices = [('', '- Pilih Mata Pelajaran -')] + [
        (s['id'], s.get('name')) for s in visible_subjects(user)
    ]


def _form_data(form, user):
    school_class = dao.get_class(form.class_id.data)
    subject = dao.get_subject(form.subject_id.data)
    teacher = dao.get_teacher_by_uid(user.uid) if user.role == GURU else None
    return {
        'title': form.title.data.strip(),
        'description': form.description.data or '',
        'fileURL': form.file_url.data or None,
        'meetingNumber': form.meeting_number.data,
        'dueDate': as_utc(form.due_date.data),
        'classId': form.class_id.data,
        'className': school_class.get('name') if school_class else None,
        'subjectId': form.subject_id.data,
        'subjectName': subject.get('name') if subject else None,
        'teacherId': teacher['id'] if teacher else None,
        'teacherName': teacher.get('name') if teacher else user.display_name,
    }


def _valid_choice(form):
    ok = True
    if form.class_id.data not in {c for c, _ in form.class_id.choices if c}:
        form.class_id.errors.append('Kelas tidak valid.')
        ok = False
    if form.subject_id.data not in {s for s, _ in form.subject_id.choices if s}:
        form.subject_id.errors.append('Mata pelajaran tidak valid.')
        ok = False
    return ok


@bp.route('/new', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def new_assignment():
    user = get_current_user()
    form = AssignmentForm()
    _prepare_form(form, user)
    if form.validate_on_submit() and _valid_choice(form):
        data = _form_data(form, user)
        data['createdById'] = user.uid
        try:
            assignment_id = dao.create_assignment(data)
            notifications.notify_assignment(data, user.uid)
        except GoogleAPIError:
            logger.exception('Creating assignment failed')
            flash('Gagal menyimpan tugas.', 'danger')
        else:
            logger.info('Assignment %s created for class %s', assignment_id, data['classId'])
            flash('Tugas berhasil dibuat.', 'success')
            return redirect(url_for('assignments.list_assignments'))
    return render_template('assignments/form.html', form=form, title='Buat Tugas')


@bp.route('/<assignment_id>/edit', methods=['GET', 'POST'])
@role_required(ADMIN, GURU)
def edit_assignment(assignment_id):
    user = get_current_user()
    assignment = dao.get_assignment(assignment_id)
    if not assignment:
        abort(404)
    if not _can_manage(assignment, user):
        abort(403)

    form = AssignmentForm()
    _prepare_form(form, user)
    if request.method == 'GET':
        form.title.data = assignment.get('title')
        form.description.data = assignment.get('description')
        form.file_url.data = assignment.get('fileURL')
        form.meeting_number.data = assignment.get('meetingNumber')
        form.class_id.data = assignment.get('classId')
        form.subject_id.data = assignment.get('subjectId')
        if assignment.get('dueDate'):
            form.due_date.data = assignment['dueDate'].replace(tzinfo=None)

    if form.validate_on_submit() and _valid_choice(form):
        data = _form_data(form, user)
        try:
            dao.update_assignment(assignment_id, data)
            notifications.notify_assignment(data, user.uid, updated=True)
        except GoogleAPIError:
            logger.exception('Updating assignment %s failed', assignment_id)
            flash('Gagal memperbarui tugas.', 'danger')
        else:
            flash('Tugas berhasil diperbarui.', 'success')
            return redirect(url_for('assignments.view_assignment', assignment_id=assignment_id))
    return render_template('assignments/form.html', form=form, title='Ubah Tugas')


@bp.route('/<assignment_id>/delete', methods=['POST'])
@role_required(ADMIN, GURU)
def delete_assignment(assignment_id):
    user = get_current_user()
    assignment = dao.get_assignment(assignment_id)
    if not assignment:
        abort(404)
    if not _can_manage(assignment, user):
        abort(403)
    removed = dao.delete_assignment(assignment_id)
    logger.info('Assignment %s deleted with %d submissions', assignment_id, removed)
    flash('Tugas dan seluruh pengumpulannya telah dihapus.', 'success')
    return redirect(url_for('assignments.list_assignments'))


@bp.route('/<assignment_id>')
@auth_required
def view_assignment(assignment_id):
    user = get_current_user()
    assignment = dao.get_assignment(assignment_id)
    if not assignment:
        abort(404)
    assignment['displayTitle'] = display_title(assignment)

    if user.role in (ADMIN, GURU):
        if not _can_manage(assignment, user):
            abort(403)
        submissions = {s['studentId']: s for s in dao.get_submissions_by_assignment(assignment_id)}
        roster = []
        for student in dao.get_students_by_class(assignment.get('classId')):
            submission = submissions.get(student['id'])
            roster.append({
                'student': student,
                'submission': submission,
                'status': submission_status(assignment, submission),
            })
        return render_template('assignments/detail.html', assignment=assignment, roster=roster,
                               submitted_count=len(submissions))

    if assignment.get('classId') != user.class_id:
        abort(403)
    submission = dao.get_submission(assignment_id, user.student_id) if user.student_id else None
    form = SubmissionForm()
    if submission:
        form.submission_link.data = submission.get('submissionLink')
        form.notes.data = submission.get('notes')
    return render_template('assignments/detail.html', assignment=assignment, submission=submission,
                           status=submission_status(assignment, submission), form=form,
                           late_status=LATE)


@bp.route('/<assignment_id>/submit', methods=['POST'])
@role_required(SISWA, ORANGTUA)
def submit_assignment(assignment_id):
    user = get_current_user()
    assignment = dao.get_assignment(assignment_id)
    if not assignment:
        abort(404)
    if assignment.get('classId') != user.class_id or not user.student_id:
        abort(403)

    # Past the deadline only an existing submission may be updated
    existing = dao.get_submission(assignment_id, user.student_id)
    if not existing and submission_status(assignment, None) == LATE:
        flash('Batas waktu pengumpulan sudah lewat.', 'danger')
        return redirect(url_for('assignments.view_assignment', assignment_id=assignment_id))

    form = SubmissionForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        return redirect(url_for('assignments.view_assignment', assignment_id=assignment_id))

    student_name = user.display_name if user.role == SISWA else user.get('linkedStudentName')
    try:
        _, created = dao.save_submission({
            'assignmentId': assignment_id,
            'studentId': user.student_id,
            'studentName': student_name,
            'classId': assignment.get('classId'),
            'className': assignment.get('className'),
            'submissionLink': form.submission_link.data,
            'notes': form.notes.data or '',
        })
    except GoogleAPIError:
        logger.exception('Saving submission for %s failed', assignment_id)
        flash('Gagal mengumpulkan tugas.', 'danger')
    else:
        flash('Tugas berhasil dikumpulkan.' if created else 'Pengumpulan tugas diperbarui.', 'success')
    return redirect(url_for('assignments.view_assignment', assignment_id=assignment_id))
