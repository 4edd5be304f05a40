from datetime import datetime, timezone, timedelta

from firebase_admin import auth as firebase_auth

from educentral import create_app
from educentral.firebase_init import get_auth
from educentral import firestore_dao as dao
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA

PASSWORD = 'password123'


def seed_database():
    app = create_app()
    with app.app_context():
        auth = get_auth()

        def create_account(email, name, role, extra=None):
            try:
                fb_user = auth.create_user(email=email, password=PASSWORD, display_name=name)
            except firebase_auth.EmailAlreadyExistsError:
                fb_user = auth.get_user_by_email(email)
            data = {'name': name, 'email': email, 'role': role}
            if extra:
                data.update(extra)
            dao.create_user(fb_user.uid, data)
            return fb_user.uid

        print("Creating teacher profiles...")
        teachers = {}
        for name, email, subject, nip in [
            ('Siti Rahmawati', 'siti.rahmawati@sekolah.sch.id', 'Matematika', '198501012010012001'),
            ('Budi Santoso', 'budi.santoso@sekolah.sch.id', 'Bahasa Indonesia', '198703152011011002'),
            ('Dewi Lestari', 'dewi.lestari@sekolah.sch.id', 'IPA', '199002202015012003'),
        ]:
            teachers[name] = dao.create_teacher({
                'name': name, 'email': email, 'subject': subject, 'nip': nip,
            })

        print("Creating classes...")
        class_4a = dao.create_class({'name': '4A', 'teacherId': teachers['Siti Rahmawati'],
                                     'teacherName': 'Siti Rahmawati'})
        class_5b = dao.create_class({'name': '5B', 'teacherId': teachers['Budi Santoso'],
                                     'teacherName': 'Budi Santoso'})

        print("Creating subjects...")
        subjects = {}
        for name in ('Matematika', 'Bahasa Indonesia', 'IPA'):
            subjects[name] = dao.create_subject({'name': name, 'description': f'Mata pelajaran {name}'})

        print("Creating lessons...")
        schedule = [
            ('Matematika', class_4a, '4A', 'Siti Rahmawati', 'Senin', '07:30', '09:00'),
            ('Matematika', class_5b, '5B', 'Siti Rahmawati', 'Selasa', '07:30', '09:00'),
            ('Bahasa Indonesia', class_4a, '4A', 'Budi Santoso', 'Rabu', '09:15', '10:45'),
            ('Bahasa Indonesia', class_5b, '5B', 'Budi Santoso', 'Senin', '09:15', '10:45'),
            ('IPA', class_4a, '4A', 'Dewi Lestari', 'Kamis', '07:30', '09:00'),
        ]
        for subject, class_id, class_name, teacher, day, start, end in schedule:
            dao.create_lesson({
                'subjectId': subjects[subject], 'subjectName': subject,
                'classId': class_id, 'className': class_name,
                'teacherId': teachers[teacher], 'teacherName': teacher,
                'dayOfWeek': day, 'startTime': start, 'endTime': end,
            })

        print("Creating accounts...")
        create_account('admin@sekolah.sch.id', 'Admin Sekolah', ADMIN)

        guru_uid = create_account('siti.rahmawati@sekolah.sch.id', 'Siti Rahmawati', GURU, {
            'assignedClassIds': dao.get_class_ids_for_teacher(teachers['Siti Rahmawati']),
        })
        dao.link_teacher(teachers['Siti Rahmawati'], guru_uid)

        student_uids = []
        for i, name in enumerate(['Andi Pratama', 'Bunga Citra', 'Cahya Putra'], start=1):
            uid = create_account(f'siswa{i}@sekolah.sch.id', name, SISWA, {
                'classId': class_4a, 'className': '4A', 'attendanceNumber': i,
            })
            student_uids.append(uid)

        parent_id = dao.create_parent({
            'name': 'Rina Pratama', 'email': 'rina.pratama@gmail.com', 'phone': '081234567890',
            'studentId': student_uids[0], 'studentName': 'Andi Pratama',
        })
        parent_uid = create_account('rina.pratama@gmail.com', 'Rina Pratama', ORANGTUA, {
            'linkedStudentId': student_uids[0], 'linkedStudentName': 'Andi Pratama',
            'linkedStudentClassId': class_4a, 'linkedStudentClassName': '4A',
        })
        dao.link_parent(parent_id, parent_uid)

        print("Creating sample content...")
        now = datetime.now(timezone.utc)
        dao.create_assignment({
            'title': 'Latihan Pecahan', 'description': 'Kerjakan soal halaman 42 nomor 1-10.',
            'meetingNumber': 3, 'dueDate': now + timedelta(days=7),
            'classId': class_4a, 'className': '4A',
            'subjectId': subjects['Matematika'], 'subjectName': 'Matematika',
            'teacherId': teachers['Siti Rahmawati'], 'teacherName': 'Siti Rahmawati',
            'createdById': guru_uid,
        })
        dao.create_announcement({
            'title': 'Libur Semester Genap',
            'content': 'Libur semester genap dimulai tanggal 24 Juni. Rapor dibagikan pada 21 Juni.',
            'targetAudience': [GURU, SISWA, ORANGTUA], 'targetClassIds': [],
            'createdByName': 'Admin Sekolah',
        })

        print("\n" + "=" * 60)
        print("    Akun Uji Coba (kata sandi: password123)")
        print("=" * 60)
        print("  Admin      : admin@sekolah.sch.id")
        print("  Guru       : siti.rahmawati@sekolah.sch.id")
        print("  Siswa      : siswa1@sekolah.sch.id ~ siswa3@sekolah.sch.id")
        print("  Orang tua  : rina.pratama@gmail.com")
        print("=" * 60)
        print("Seeding selesai!")


if __name__ == '__main__':
    seed_database()
