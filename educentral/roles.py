ADMIN = 'admin'
GURU = 'guru'
SISWA = 'siswa'
ORANGTUA = 'orangtua'

ROLES = (ADMIN, GURU, SISWA, ORANGTUA)

ROLE_DISPLAY_NAMES = {
    ADMIN: 'Admin',
    GURU: 'Guru',
    SISWA: 'Siswa',
    ORANGTUA: 'Orang Tua',
}

# Roles a visitor may pick on the public registration page
SELF_REGISTER_ROLES = (GURU, SISWA, ORANGTUA)

STAFF_ROLES = (ADMIN, GURU)


def role_display(role):
    return ROLE_DISPLAY_NAMES.get(role, role or '-')


def role_choices(roles=ROLES):
    return [(r, ROLE_DISPLAY_NAMES[r]) for r in roles]
