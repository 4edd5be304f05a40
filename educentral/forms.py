from flask import current_app
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed, FileRequired
from wtforms import (StringField, PasswordField, TextAreaField, SelectField, SelectMultipleField,
                     IntegerField, FloatField, SubmitField, DateTimeLocalField, DateField, BooleanField)
from wtforms.validators import (DataRequired, Email, Length, EqualTo, ValidationError, Optional,
                                NumberRange, Regexp, URL, InputRequired)

from educentral.roles import ADMIN, GURU, SISWA, ORANGTUA, ROLES, role_choices, SELF_REGISTER_ROLES

IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'webp']
TIME_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'

GENDER_CHOICES = [('', '- Pilih -'), ('laki-laki', 'Laki-laki'), ('perempuan', 'Perempuan')]
AGAMA_CHOICES = [('', '- Pilih -')] + [(a, a) for a in
                                       ['Islam', 'Kristen', 'Katolik', 'Hindu', 'Buddha', 'Konghucu']]
TEACHER_SUBJECT_CHOICES = [(s, s) for s in ['Guru Kelas', 'PAI', 'Penjas']]
DAY_CHOICES = [(d, d) for d in ['Senin', 'Selasa', 'Rabu', 'Kamis', 'Jumat', 'Sabtu']]
ASSESSMENT_TYPES = ['UTS', 'UAS', 'Tugas Harian', 'Kuis', 'Proyek', 'Praktikum', 'Lainnya']
EVENT_CATEGORIES = ['Akademik', 'Olahraga', 'Seni', 'Keagamaan', 'Rapat', 'Libur', 'Lainnya']
AVATAR_CHOICES = [('', 'Tidak diubah')] + [
    (f'/static/avatars/avatar-{i}.svg', f'Avatar {i}') for i in range(1, 7)
]


def _fail(field, message):
    field.errors.append(message)
    return False


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(message='Email wajib diisi'), Email(message='Format email tidak valid')])
    password = PasswordField('Kata Sandi', validators=[DataRequired(message='Kata sandi wajib diisi')])
    remember_id = BooleanField('Ingat email saya')
    submit = SubmitField('Masuk')


class RegistrationForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(message='Nama wajib diisi'), Length(min=3, max=120, message='Nama minimal 3 karakter')])
    email = StringField('Email', validators=[DataRequired(message='Email wajib diisi'), Email(message='Format email tidak valid')])
    password = PasswordField('Kata Sandi', validators=[DataRequired(message='Kata sandi wajib diisi'), Length(min=6, message='Kata sandi minimal 6 karakter')])
    confirm_password = PasswordField('Konfirmasi Kata Sandi', validators=[DataRequired(message='Konfirmasi kata sandi wajib diisi'), EqualTo('password', message='Kata sandi tidak cocok')])
    role = SelectField('Peran', choices=role_choices(SELF_REGISTER_ROLES), default=SISWA)
    submit = SubmitField('Daftar')


class SettingsForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(message='Nama wajib diisi'), Length(min=3, max=120, message='Nama minimal 3 karakter')])
    avatar = SelectField('Avatar', choices=AVATAR_CHOICES, validators=[Optional()])
    photo = FileField('Foto Profil', validators=[FileAllowed(IMAGE_EXTENSIONS, 'Hanya file gambar yang diperbolehkan')])
    submit = SubmitField('Simpan Profil')


class PasswordChangeForm(FlaskForm):
    new_password = PasswordField('Kata Sandi Baru', validators=[DataRequired(message='Kata sandi baru wajib diisi'), Length(min=6, message='Kata sandi minimal 6 karakter')])
    confirm_password = PasswordField('Konfirmasi Kata Sandi', validators=[DataRequired(message='Konfirmasi kata sandi wajib diisi'), EqualTo('new_password', message='Kata sandi tidak cocok')])
    submit = SubmitField('Ubah Kata Sandi')


class AddUserForm(FlaskForm):
    """Account creation form used by the user administration page.

    ``teacher_class_ids`` maps each selectable teacher profile id to the
    class ids it has lessons in; a teacher without any is rejected.
    """

    role = SelectField('Peran', choices=role_choices(ROLES), validators=[DataRequired(message='Peran wajib dipilih')])
    name = StringField('Nama Lengkap', validators=[Length(max=120)])
    email = StringField('Email', validators=[Optional(), Email(message='Format email tidak valid')])
    password = PasswordField('Kata Sandi', validators=[DataRequired(message='Kata sandi wajib diisi'), Length(min=6, message='Kata sandi minimal 6 karakter')])
    class_id = SelectField('Kelas', choices=[], validate_choice=False)
    teacher_profile_id = SelectField('Profil Guru', choices=[], validate_choice=False)
    parent_profile_id = SelectField('Profil Orang Tua', choices=[], validate_choice=False)
    admin_code = PasswordField('Kode Keamanan Admin')
    submit = SubmitField('Tambah Pengguna')

    def __init__(self, *args, teacher_class_ids=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.teacher_class_ids = teacher_class_ids or {}

    def validate(self, extra_validators=None):
        ok = super().validate(extra_validators=extra_validators)
        role = self.role.data

        if role == GURU:
            teacher_id = self.teacher_profile_id.data
            if not teacher_id:
                ok = _fail(self.teacher_profile_id, 'Pilih profil guru yang akan ditautkan.')
            elif not self.teacher_class_ids.get(teacher_id):
                ok = _fail(self.teacher_profile_id,
                           'Guru ini belum memiliki jadwal pelajaran di kelas mana pun.')
        elif len((self.name.data or '').strip()) < 3:
            ok = _fail(self.name, 'Nama minimal 3 karakter.')

        if role == ADMIN:
            if not self.email.data:
                ok = _fail(self.email, 'Email wajib diisi untuk akun admin.')
            if self.admin_code.data != current_app.config.get('ADMIN_SECURITY_CODE'):
                ok = _fail(self.admin_code, 'Kode keamanan admin salah.')
        elif role == SISWA and not self.class_id.data:
            ok = _fail(self.class_id, 'Siswa harus terdaftar di satu kelas.')
        elif role == ORANGTUA and not self.parent_profile_id.data:
            ok = _fail(self.parent_profile_id, 'Pilih profil orang tua yang akan ditautkan.')
        return ok


class EditUserForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(message='Nama wajib diisi'), Length(min=3, max=120, message='Nama minimal 3 karakter')])
    role = SelectField('Peran', choices=role_choices(ROLES))
    class_id = SelectField('Kelas', choices=[], validate_choice=False)
    assigned_class_ids = SelectMultipleField('Kelas yang Diajar', choices=[], validate_choice=False)
    submit = SubmitField('Simpan Perubahan')

    def validate(self, extra_validators=None):
        ok = super().validate(extra_validators=extra_validators)
        if self.role.data == GURU and not self.assigned_class_ids.data:
            ok = _fail(self.assigned_class_ids, 'Guru harus mengajar minimal satu kelas.')
        if self.role.data == SISWA and not self.class_id.data:
            ok = _fail(self.class_id, 'Siswa harus terdaftar di satu kelas.')
        return ok


class AnnouncementForm(FlaskForm):
    title = StringField('Judul', validators=[DataRequired(message='Judul wajib diisi'), Length(min=5, max=200, message='Judul minimal 5 karakter')])
    content = TextAreaField('Isi Pengumuman', validators=[DataRequired(message='Isi wajib diisi'), Length(min=10, message='Isi minimal 10 karakter')])
    target_audience = SelectMultipleField('Ditujukan Kepada', choices=role_choices(ROLES))
    target_class_ids = SelectMultipleField('Kelas Tujuan', choices=[], validate_choice=False)
    submit = SubmitField('Simpan')

    def validate_target_audience(self, field):
        if not field.data:
            raise ValidationError('Pilih minimal satu peran tujuan.')


class AssignmentForm(FlaskForm):
    title = StringField('Judul Tugas', validators=[DataRequired(message='Judul wajib diisi'), Length(min=3, max=200)])
    subject_id = SelectField('Mata Pelajaran', choices=[], validate_choice=False, validators=[DataRequired(message='Mata pelajaran wajib dipilih')])
    class_id = SelectField('Kelas', choices=[], validate_choice=False, validators=[DataRequired(message='Kelas wajib dipilih')])
    due_date = DateTimeLocalField('Batas Waktu', format='%Y-%m-%dT%H:%M', validators=[DataRequired(message='Batas waktu wajib diisi')])
    meeting_number = IntegerField('Pertemuan Ke-', validators=[Optional(), NumberRange(min=1, max=100)])
    description = TextAreaField('Deskripsi', validators=[Optional()])
    file_url = StringField('Tautan Berkas', validators=[Optional(), URL(message='URL tidak valid')])
    submit = SubmitField('Simpan')


class SubmissionForm(FlaskForm):
    submission_link = StringField('Tautan Jawaban', validators=[DataRequired(message='Tautan wajib diisi'), URL(message='URL tidak valid')])
    notes = TextAreaField('Catatan', validators=[Optional(), Length(max=1000)])
    submit = SubmitField('Kumpulkan')


class ResultForm(FlaskForm):
    student_id = SelectField('Siswa', choices=[], validate_choice=False, validators=[DataRequired(message='Siswa wajib dipilih')])
    subject_id = SelectField('Mata Pelajaran', choices=[], validate_choice=False, validators=[DataRequired(message='Mata pelajaran wajib dipilih')])
    assignment_id = SelectField('Tugas Terkait', choices=[], validate_choice=False)
    assessment_title = StringField('Judul Penilaian', validators=[DataRequired(message='Judul wajib diisi'), Length(min=3, max=200)])
    assessment_type = SelectField('Jenis Penilaian', choices=[(t, t) for t in ASSESSMENT_TYPES])
    score = FloatField('Nilai', validators=[InputRequired(message='Nilai wajib diisi'), NumberRange(min=0, max=1000, message='Nilai harus antara 0 dan 1000')])
    max_score = FloatField('Nilai Maksimal', default=100, validators=[Optional(), NumberRange(min=1, message='Nilai maksimal minimal 1')])
    grade = StringField('Predikat', validators=[Optional(), Length(max=5, message='Predikat maksimal 5 karakter')])
    date_of_assessment = DateField('Tanggal Penilaian', validators=[DataRequired(message='Tanggal wajib diisi')])
    notes = TextAreaField('Catatan', validators=[Optional()])
    submit = SubmitField('Simpan')

    def validate_score(self, field):
        max_score = self.max_score.data or 100
        if field.data is not None and field.data > max_score:
            raise ValidationError('Nilai tidak boleh melebihi nilai maksimal.')


class ClassForm(FlaskForm):
    name = StringField('Nama Kelas', validators=[DataRequired(message='Nama kelas wajib diisi'), Length(min=3, max=50, message='Nama kelas minimal 3 karakter')])
    teacher_id = SelectField('Wali Kelas', choices=[], validate_choice=False)
    submit = SubmitField('Simpan')


class LessonForm(FlaskForm):
    subject_id = SelectField('Mata Pelajaran', choices=[], validate_choice=False, validators=[DataRequired(message='Mata pelajaran wajib dipilih')])
    class_id = SelectField('Kelas', choices=[], validate_choice=False, validators=[DataRequired(message='Kelas wajib dipilih')])
    teacher_id = SelectField('Guru', choices=[], validate_choice=False, validators=[DataRequired(message='Guru wajib dipilih')])
    day_of_week = SelectField('Hari', choices=DAY_CHOICES)
    start_time = StringField('Jam Mulai', validators=[DataRequired(message='Jam mulai wajib diisi'), Regexp(TIME_PATTERN, message='Format jam HH:MM')])
    end_time = StringField('Jam Selesai', validators=[DataRequired(message='Jam selesai wajib diisi'), Regexp(TIME_PATTERN, message='Format jam HH:MM')])
    topic = StringField('Topik', validators=[Optional(), Length(max=200)])
    materials = TextAreaField('Materi', validators=[Optional()])
    submit = SubmitField('Simpan')

    def validate_end_time(self, field):
        if self.start_time.data and field.data and field.data <= self.start_time.data:
            raise ValidationError('Jam selesai harus setelah jam mulai.')


class SubjectForm(FlaskForm):
    name = StringField('Nama Mata Pelajaran', validators=[DataRequired(message='Nama wajib diisi'), Length(min=2, max=100)])
    description = TextAreaField('Deskripsi', validators=[Optional()])
    teacher_uid = SelectField('Guru Pengampu', choices=[], validate_choice=False)
    submit = SubmitField('Simpan')


class TeacherForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(message='Nama wajib diisi'), Length(min=3, max=120, message='Nama minimal 3 karakter')])
    email = StringField('Email', validators=[DataRequired(message='Email wajib diisi'), Email(message='Format email tidak valid')])
    subject = SelectField('Mata Pelajaran Utama', choices=TEACHER_SUBJECT_CHOICES)
    nip = StringField('NIP', validators=[Optional(), Length(max=30)])
    phone = StringField('Telepon', validators=[Optional(), Length(max=20)])
    address = TextAreaField('Alamat', validators=[Optional()])
    gender = SelectField('Jenis Kelamin', choices=GENDER_CHOICES)
    agama = SelectField('Agama', choices=AGAMA_CHOICES)
    uid = StringField('UID Akun', validators=[Optional(), Length(max=128)])
    submit = SubmitField('Simpan')


class StudentForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(message='Nama wajib diisi'), Length(min=3, max=120, message='Nama minimal 3 karakter')])
    nis = StringField('NIS', validators=[DataRequired(message='NIS wajib diisi'), Length(min=5, max=20, message='NIS minimal 5 karakter')])
    email = StringField('Email', validators=[Optional(), Email(message='Format email tidak valid')])
    class_id = SelectField('Kelas', choices=[], validate_choice=False, validators=[DataRequired(message='Kelas wajib dipilih')])
    attendance_number = IntegerField('No. Absen', validators=[Optional(), NumberRange(min=1, max=100)])
    date_of_birth = DateField('Tanggal Lahir', validators=[Optional()])
    gender = SelectField('Jenis Kelamin', choices=GENDER_CHOICES)
    agama = SelectField('Agama', choices=AGAMA_CHOICES)
    address = TextAreaField('Alamat', validators=[Optional()])
    linked_parent_id = SelectField('Orang Tua', choices=[], validate_choice=False)
    submit = SubmitField('Simpan')


class ParentForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(message='Nama wajib diisi'), Length(min=3, max=120, message='Nama minimal 3 karakter')])
    email = StringField('Email', validators=[Optional(), Email(message='Format email tidak valid')])
    phone = StringField('Telepon', validators=[Optional(), Length(max=20)])
    student_id = SelectField('Anak', choices=[], validate_choice=False, validators=[DataRequired(message='Siswa wajib dipilih')])
    submit = SubmitField('Simpan')


class EventForm(FlaskForm):
    title = StringField('Judul Acara', validators=[DataRequired(message='Judul wajib diisi'), Length(min=3, max=200)])
    description = TextAreaField('Deskripsi', validators=[Optional()])
    date = DateField('Tanggal', validators=[DataRequired(message='Tanggal wajib diisi')])
    start_time = StringField('Jam Mulai', validators=[Optional(), Regexp(TIME_PATTERN, message='Format jam HH:MM')])
    end_time = StringField('Jam Selesai', validators=[Optional(), Regexp(TIME_PATTERN, message='Format jam HH:MM')])
    location = StringField('Lokasi', validators=[Optional(), Length(max=200)])
    category = SelectField('Kategori', choices=[(c, c) for c in EVENT_CATEGORIES])
    submit = SubmitField('Simpan')


class ExamForm(FlaskForm):
    title = StringField('Nama Ujian', validators=[DataRequired(message='Nama ujian wajib diisi'), Length(min=3, max=200)])
    subject_id = SelectField('Mata Pelajaran', choices=[], validate_choice=False, validators=[DataRequired(message='Mata pelajaran wajib dipilih')])
    class_id = SelectField('Kelas', choices=[], validate_choice=False, validators=[DataRequired(message='Kelas wajib dipilih')])
    date = DateField('Tanggal', validators=[DataRequired(message='Tanggal wajib diisi')])
    start_time = StringField('Jam Mulai', validators=[DataRequired(message='Jam mulai wajib diisi'), Regexp(TIME_PATTERN, message='Format jam HH:MM')])
    end_time = StringField('Jam Selesai', validators=[DataRequired(message='Jam selesai wajib diisi'), Regexp(TIME_PATTERN, message='Format jam HH:MM')])
    description = TextAreaField('Keterangan', validators=[Optional()])
    submit = SubmitField('Simpan')

    def validate_end_time(self, field):
        if self.start_time.data and field.data and field.data <= self.start_time.data:
            raise ValidationError('Jam selesai harus setelah jam mulai.')


class ActivityForm(FlaskForm):
    title = StringField('Nama Kegiatan', validators=[DataRequired(message='Nama kegiatan wajib diisi'), Length(min=3, max=200)])
    description = TextAreaField('Deskripsi', validators=[Optional()])
    date = DateField('Tanggal', validators=[DataRequired(message='Tanggal wajib diisi')])
    submit = SubmitField('Simpan')


class MediaUploadForm(FlaskForm):
    image = FileField('Foto Kegiatan', validators=[FileRequired(message='Pilih file gambar'), FileAllowed(IMAGE_EXTENSIONS, 'Hanya file gambar yang diperbolehkan')])
    caption = StringField('Keterangan', validators=[Optional(), Length(max=200)])
    submit = SubmitField('Unggah')
