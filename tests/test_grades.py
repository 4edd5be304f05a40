from datetime import datetime, timedelta, timezone

from educentral.services import grades

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_submission_status():
    upcoming = {'dueDate': NOW + timedelta(days=1)}
    overdue = {'dueDate': NOW - timedelta(days=1)}
    assert grades.submission_status(upcoming, None, now=NOW) == grades.PENDING
    assert grades.submission_status(overdue, None, now=NOW) == grades.LATE
    assert grades.submission_status(overdue, {'id': 's1'}, now=NOW) == grades.SUBMITTED
    assert grades.submission_status({}, None, now=NOW) == grades.PENDING


def test_naive_due_dates_are_treated_as_utc():
    overdue = {'dueDate': datetime(2025, 3, 9, 8, 0)}
    assert grades.submission_status(overdue, None, now=NOW) == grades.LATE


def test_display_title_adds_meeting_number():
    assert grades.display_title({'title': 'Latihan Pecahan', 'meetingNumber': 3}) == 'Latihan Pecahan (P3)'
    assert grades.display_title({'title': 'Latihan Pecahan'}) == 'Latihan Pecahan'


def test_percentage_defaults_max_score_to_100():
    assert grades.percentage({'score': 45, 'maxScore': 50}) == 90.0
    assert grades.percentage({'score': 70}) == 70.0
    assert grades.percentage({'maxScore': 50}) is None


def _seed_class(db):
    db.seed('assignments', 'a1', title='Pecahan', classId='c1', subjectName='Matematika',
            dueDate=NOW - timedelta(days=2), meetingNumber=1)
    db.seed('assignments', 'a2', title='Puisi', classId='c1', subjectName='Bahasa Indonesia',
            dueDate=NOW - timedelta(days=1))
    db.seed('assignments', 'a3', title='Ekosistem', classId='c1', subjectName='IPA',
            dueDate=NOW + timedelta(days=3))
    db.seed('assignments', 'a4', title='Kelas lain', classId='c2', dueDate=NOW)
    db.seed('assignmentSubmissions', 'sub1', assignmentId='a1', studentId='s1',
            submissionLink='https://drive/1')
    db.seed('assignmentSubmissions', 'sub2', assignmentId='a2', studentId='s1',
            submissionLink='https://drive/2')
    db.seed('assignmentSubmissions', 'sub3', assignmentId='a3', studentId='s2',
            submissionLink='https://drive/3')
    db.seed('results', 'r1', assignmentId='a1', studentId='s1', score=80, maxScore=100, grade='B')
    db.seed('results', 'r2', assignmentId='a3', studentId='s2', score=90, maxScore=100)
    db.seed('results', 'r3', studentId='s1', assessmentTitle='UTS Matematika', assessmentType='UTS',
            score=75, maxScore=100, dateOfAssessment=NOW)


def test_grade_entries_join_submissions_and_results_for_one_student(db):
    _seed_class(db)

    entries = grades.grade_entries('s1', 'c1')

    assert [e['assignmentId'] for e in entries] == ['a2', 'a1']
    puisi, pecahan = entries
    assert pecahan['title'] == 'Pecahan (P1)'
    assert pecahan['status'] == grades.GRADED
    assert pecahan['score'] == 80
    assert pecahan['percentage'] == 80.0
    assert puisi['status'] == grades.AWAITING_GRADE
    assert puisi['score'] is None
    assert puisi['submitted']


def test_grade_entries_without_student_or_class(db):
    assert grades.grade_entries(None, 'c1') == []
    assert grades.grade_entries('s1', None) == []


def test_standalone_results_and_report_rows(db):
    _seed_class(db)
    entries = grades.grade_entries('s1', 'c1')
    exams = grades.standalone_results('s1')

    assert [r['id'] for r in exams] == ['r3']
    rows = grades.report_rows(entries, exams)
    assert [row[0] for row in rows] == [1, 2, 3]
    assert rows[1][5] == '80/100'
    assert rows[0][5] == '-'
    assert rows[2][1] == 'UTS Matematika (UTS)'
    assert len(rows[0]) == len(grades.REPORT_HEADERS)


def test_average_percentage_ignores_ungraded():
    entries = [{'percentage': 80.0}, {'percentage': None}, {'percentage': 90.0}]
    assert grades.average_percentage(entries) == 85.0
    assert grades.average_percentage([{'percentage': None}]) is None
