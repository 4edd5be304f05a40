"""Assignment status and the per-student grade report.

The grade report joins three collections for one student: the class's
assignments, the student's submissions and the student's results. Both
joins use ``assignmentId in [...]`` queries, run in chunks of 30 ids.
"""

from datetime import datetime, timezone

from educentral import firestore_dao as dao

SUBMITTED = 'Sudah Dikerjakan'
LATE = 'Terlambat'
PENDING = 'Belum Dikerjakan'

GRADED = 'Sudah Dinilai'
AWAITING_GRADE = 'Menunggu Penilaian'

REPORT_HEADERS = ['No.', 'Tugas / Penilaian', 'Mata Pelajaran', 'Tanggal', 'Status', 'Nilai', 'Predikat']


def as_utc(value):
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def submission_status(assignment, submission=None, now=None):
    if submission:
        return SUBMITTED
    due = as_utc(assignment.get('dueDate'))
    now = now or datetime.now(timezone.utc)
    if isinstance(due, datetime) and due < now:
        return LATE
    return PENDING


def display_title(assignment):
    title = assignment.get('title') or '-'
    if assignment.get('meetingNumber'):
        title = f"{title} (P{assignment['meetingNumber']})"
    return title


def percentage(result):
    max_score = result.get('maxScore') or 100
    score = result.get('score')
    if score is None:
        return None
    return round(float(score) / float(max_score) * 100, 1)


def grade_entries(student_id, class_id):
    """Assignments of the class the student submitted or was scored on.

    Newest due date first; assignments with neither a submission nor a
    result are left out.
    """
    if not student_id or not class_id:
        return []
    assignments = dao.get_assignments_by_class(class_id)
    assignment_ids = [a['id'] for a in assignments]
    results = dao.get_results_for_assignments(assignment_ids, student_id=student_id)
    submissions = dao.get_submissions_for_assignments(assignment_ids, student_id=student_id)
    result_by_assignment = {r['assignmentId']: r for r in results}
    submission_by_assignment = {s['assignmentId']: s for s in submissions}

    entries = []
    for assignment in assignments:
        result = result_by_assignment.get(assignment['id'])
        submission = submission_by_assignment.get(assignment['id'])
        if not result and not submission:
            continue
        entries.append({
            'assignmentId': assignment['id'],
            'title': display_title(assignment),
            'subjectName': assignment.get('subjectName'),
            'dueDate': assignment.get('dueDate'),
            'submitted': submission is not None,
            'submittedAt': submission.get('submittedAt') if submission else None,
            'submissionLink': submission.get('submissionLink') if submission else None,
            'score': result.get('score') if result else None,
            'maxScore': result.get('maxScore') if result else None,
            'grade': result.get('grade') if result else None,
            'notes': result.get('notes') if result else None,
            'percentage': percentage(result) if result else None,
            'status': GRADED if result else AWAITING_GRADE,
        })
    return entries


def standalone_results(student_id):
    """Results not tied to an assignment (UTS, UAS and the like)."""
    if not student_id:
        return []
    return [r for r in dao.get_results_by_student(student_id) if not r.get('assignmentId')]


def average_percentage(entries):
    values = [e['percentage'] for e in entries if e.get('percentage') is not None]
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def _score_text(score, max_score):
    if score is None:
        return '-'
    return f'{score:g}/{(max_score or 100):g}'


def report_rows(entries, exams=()):
    rows = []
    for entry in entries:
        rows.append([
            len(rows) + 1, entry['title'], entry.get('subjectName'), entry.get('dueDate'),
            entry['status'], _score_text(entry.get('score'), entry.get('maxScore')), entry.get('grade'),
        ])
    for result in exams:
        rows.append([
            len(rows) + 1,
            f"{result.get('assessmentTitle') or '-'} ({result.get('assessmentType') or '-'})",
            result.get('subjectName'), result.get('dateOfAssessment'), GRADED,
            _score_text(result.get('score'), result.get('maxScore')), result.get('grade'),
        ])
    return rows
