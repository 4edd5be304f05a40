from educentral.navigation import filter_nav_items, is_visible
from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA, STAFF_ROLES, role_display, role_choices


def _labels(items):
    return [item['label'] for item in items]


def allowed_endpoints(role):
    endpoints = set()
    for item in filter_nav_items(role):
        if item.get('endpoint'):
            endpoints.add(item['endpoint'])
        for child in item.get('children', []):
            endpoints.add(child['endpoint'])
    return endpoints


def test_item_without_roles_is_visible_to_everyone():
    item = {'label': 'Beranda', 'endpoint': 'main.dashboard'}
    for role in (ADMIN, GURU, SISWA, ORANGTUA):
        assert is_visible(item, role)


def test_user_administration_only_for_admin():
    assert 'user_admin.list_users' in allowed_endpoints(ADMIN)
    for role in (GURU, SISWA, ORANGTUA):
        assert 'user_admin.list_users' not in allowed_endpoints(role)


def test_groups_without_visible_children_are_dropped():
    items = [
        {'label': 'Pengguna', 'children': [
            {'label': 'Guru', 'endpoint': 'teachers.list_teachers', 'roles': [ADMIN]},
        ]},
        {'label': 'Beranda', 'endpoint': 'main.dashboard'},
    ]
    assert _labels(filter_nav_items(SISWA, items)) == ['Beranda']
    assert _labels(filter_nav_items(ADMIN, items)) == ['Pengguna', 'Beranda']


def test_filtering_does_not_mutate_the_source_tree():
    items = [{'label': 'Akademik', 'children': [
        {'label': 'Kelas', 'endpoint': 'classes.list_classes', 'roles': [ADMIN]},
        {'label': 'Kelas Saya', 'endpoint': 'classes.my_class', 'roles': [SISWA]},
    ]}]
    filter_nav_items(SISWA, items)
    assert len(items[0]['children']) == 2


def test_family_roles_see_their_own_pages():
    siswa = allowed_endpoints(SISWA)
    assert {'classes.my_class', 'grades.my_grades'} <= siswa
    assert 'results.list_results' not in siswa
    orangtua = allowed_endpoints(ORANGTUA)
    assert 'classes.list_classes' in orangtua
    assert 'classes.my_class' not in orangtua


def test_every_role_keeps_dashboard_notifications_and_settings():
    for role in (ADMIN, GURU, SISWA, ORANGTUA):
        assert {'main.dashboard', 'notifications.list_notifications', 'auth.settings'} <= allowed_endpoints(role)


def test_every_nav_endpoint_is_registered(app):
    registered = set(app.view_functions)
    for role in (ADMIN, GURU, SISWA, ORANGTUA):
        assert allowed_endpoints(role) <= registered


def test_role_display_names():
    assert role_display(ORANGTUA) == 'Orang Tua'
    assert role_display(None) == '-'
    assert role_display('kepsek') == 'kepsek'
    assert role_choices((GURU, SISWA)) == [('guru', 'Guru'), ('siswa', 'Siswa')]


def test_staff_flag_follows_role(make_user):
    for role in STAFF_ROLES:
        assert make_user('u1', role).is_staff
    for role in (SISWA, ORANGTUA):
        assert not make_user('u1', role).is_staff
