"""Sidebar navigation.

Each entry maps a route endpoint to the roles allowed to see it. An entry
without ``roles`` is visible to every signed-in user; a group is shown only
when at least one of its children survives the filter.
"""

from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA

NAV_ITEMS = [
    {'label': 'Beranda', 'endpoint': 'main.dashboard', 'icon': 'home'},
    {'label': 'Administrasi Pengguna', 'endpoint': 'user_admin.list_users',
     'icon': 'user-cog', 'roles': [ADMIN]},
    {'label': 'Sekolah', 'icon': 'school', 'children': [
        {'label': 'Pengumuman', 'endpoint': 'announcements.list_announcements', 'icon': 'megaphone'},
        {'label': 'Acara', 'endpoint': 'events.list_events', 'icon': 'calendar'},
        {'label': 'Kegiatan', 'endpoint': 'activities.list_activities', 'icon': 'image'},
    ]},
    {'label': 'Pengguna', 'icon': 'users', 'roles': [ADMIN, GURU], 'children': [
        {'label': 'Guru', 'endpoint': 'teachers.list_teachers', 'icon': 'briefcase', 'roles': [ADMIN]},
        {'label': 'Siswa', 'endpoint': 'students.list_students', 'icon': 'graduation-cap', 'roles': [ADMIN, GURU]},
        {'label': 'Orang Tua', 'endpoint': 'parents.list_parents', 'icon': 'users', 'roles': [ADMIN, GURU]},
    ]},
    {'label': 'Akademik', 'icon': 'book', 'children': [
        {'label': 'Mata Pelajaran', 'endpoint': 'subjects.list_subjects', 'icon': 'book-open', 'roles': [ADMIN, GURU]},
        {'label': 'Kelas', 'endpoint': 'classes.list_classes', 'icon': 'library', 'roles': [ADMIN, GURU]},
        {'label': 'Kelas Anak', 'endpoint': 'classes.list_classes', 'icon': 'library', 'roles': [ORANGTUA]},
        {'label': 'Kelas Saya', 'endpoint': 'classes.my_class', 'icon': 'library', 'roles': [SISWA]},
        {'label': 'Jadwal Pelajaran', 'endpoint': 'lessons.list_lessons', 'icon': 'clock'},
        {'label': 'Kehadiran', 'endpoint': 'attendance.index', 'icon': 'check-square'},
    ]},
    {'label': 'Tugas & Penilaian', 'icon': 'clipboard', 'children': [
        {'label': 'Ujian', 'endpoint': 'exams.list_exams', 'icon': 'file-text'},
        {'label': 'Tugas', 'endpoint': 'assignments.list_assignments', 'icon': 'clipboard-list'},
        {'label': 'Hasil Belajar', 'endpoint': 'grades.my_grades', 'icon': 'award', 'roles': [SISWA, ORANGTUA]},
        {'label': 'Hasil', 'endpoint': 'results.list_results', 'icon': 'bar-chart', 'roles': [ADMIN, GURU]},
    ]},
    {'label': 'Notifikasi', 'endpoint': 'notifications.list_notifications', 'icon': 'bell'},
    {'label': 'Pengaturan', 'endpoint': 'auth.settings', 'icon': 'settings'},
]


def is_visible(item, role):
    roles = item.get('roles')
    return not roles or role in roles


def filter_nav_items(role, items=None):
    """Return a copy of the navigation tree containing only what ``role`` may see."""
    if items is None:
        items = NAV_ITEMS
    visible = []
    for item in items:
        if not is_visible(item, role):
            continue
        children = item.get('children')
        if children is not None:
            kept = filter_nav_items(role, children)
            if not kept:
                continue
            item = dict(item, children=kept)
        visible.append(item)
    return visible