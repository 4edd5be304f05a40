from werkzeug.datastructures import MultiDict

from educentral.roles import GURU
from educentral.services import attendance

STUDENTS = [
    {'id': 's1', 'name': 'Andi', 'attendanceNumber': 1},
    {'id': 's2', 'name': 'Bunga', 'attendanceNumber': 2},
]


def test_roster_defaults_to_present_and_reuses_saved_entries():
    sheet = {'studentAttendances': [{'studentId': 's2', 'status': 'Sakit', 'notes': 'Demam'}]}
    rows = attendance.merge_roster(STUDENTS, sheet)
    assert [(r['studentId'], r['status'], r['notes']) for r in rows] == [
        ('s1', 'Hadir', ''), ('s2', 'Sakit', 'Demam'),
    ]


def test_parse_sheet_rejects_unknown_status():
    form = MultiDict({'status_s1': 'Izin', 'notes_s1': '  acara keluarga ', 'status_s2': 'Bolos'})
    entries = attendance.parse_sheet(form, STUDENTS)
    assert entries[0] == {'studentId': 's1', 'studentName': 'Andi', 'status': 'Izin',
                          'notes': 'acara keluarga'}
    assert entries[1]['status'] == attendance.DEFAULT_STATUS


def test_save_sheet_then_student_history(db, make_user):
    teacher = make_user('g1', GURU, name='Siti')
    school_class = {'id': 'c1', 'name': '4A'}
    entries = attendance.parse_sheet(MultiDict({'status_s1': 'Alpa'}), STUDENTS)

    assert attendance.save_sheet(school_class, '2025-03-05', entries, teacher) is True
    assert attendance.save_sheet(school_class, '2025-03-06', entries, teacher) is True

    sheet = db.doc('student_attendances', 'c1_2025-03-05')
    assert sheet['className'] == '4A'
    assert sheet['recordedByName'] == 'Siti'

    history, totals = attendance.student_history('s1', 'c1')
    assert [h['date'] for h in history] == ['2025-03-06', '2025-03-05']
    assert totals == {'Hadir': 0, 'Sakit': 0, 'Izin': 0, 'Alpa': 2}
