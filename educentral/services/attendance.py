from collections import Counter

from educentral import firestore_dao as dao

STATUSES = ['Hadir', 'Sakit', 'Izin', 'Alpa']
DEFAULT_STATUS = 'Hadir'


def merge_roster(students, sheet=None):
    """One row per student, taking status and notes from a saved sheet when present."""
    saved = {e.get('studentId'): e for e in (sheet or {}).get('studentAttendances', [])}
    rows = []
    for student in students:
        entry = saved.get(student['id'], {})
        rows.append({
            'studentId': student['id'],
            'studentName': student.get('name'),
            'attendanceNumber': student.get('attendanceNumber'),
            'status': entry.get('status') or DEFAULT_STATUS,
            'notes': entry.get('notes') or '',
        })
    return rows


def parse_sheet(form, students):
    """Read ``status_<id>`` / ``notes_<id>`` form fields for every student."""
    entries = []
    for student in students:
        status = form.get(f"status_{student['id']}", DEFAULT_STATUS)
        if status not in STATUSES:
            status = DEFAULT_STATUS
        entries.append({
            'studentId': student['id'],
            'studentName': student.get('name'),
            'status': status,
            'notes': (form.get(f"notes_{student['id']}") or '').strip(),
        })
    return entries


def save_sheet(school_class, date_str, entries, recorder):
    return dao.save_attendance(school_class['id'], date_str, {
        'className': school_class.get('name'),
        'studentAttendances': entries,
        'recordedById': recorder.uid,
        'recordedByName': recorder.display_name,
    })


def student_history(student_id, class_id):
    """Dated attendance entries for one student, newest first, plus status totals."""
    history = []
    for sheet in dao.get_attendance_by_class(class_id):
        for entry in sheet.get('studentAttendances', []):
            if entry.get('studentId') == student_id:
                history.append({'date': sheet.get('date'), 'status': entry.get('status'),
                                'notes': entry.get('notes')})
    totals = Counter(h['status'] for h in history)
    return history, {status: totals.get(status, 0) for status in STATUSES}
