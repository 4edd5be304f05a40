import logging
from datetime import timedelta
from urllib.parse import urlparse

import requests as http_requests
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError
from flask import (Blueprint, render_template, redirect, url_for, flash,
                   request, make_response, session, current_app)

from educentral.decorators import auth_required, get_current_user
from educentral.errors import UploadError
from educentral.firebase_init import get_auth
from educentral import firestore_dao as dao
from educentral.services.storage import upload_profile_image
from educentral.forms import RegistrationForm, LoginForm, SettingsForm, PasswordChangeForm

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__, url_prefix='/auth')

FIREBASE_SIGN_IN_URL = (
    'https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword'
)
SESSION_LIFETIME = timedelta(days=5)


def _firebase_sign_in(email, password):
    """Verify email/password via Firebase Auth REST API.

    Returns the ID token on success, or None on failure.
    """
    api_key = current_app.config.get('FIREBASE_WEB_API_KEY')
    if not api_key:
        logger.error('FIREBASE_WEB_API_KEY is not configured')
        return None

    try:
        resp = http_requests.post(
            f'{FIREBASE_SIGN_IN_URL}?key={api_key}',
            json={
                'email': email,
                'password': password,
                'returnSecureToken': True,
            },
            timeout=10,
        )
    except http_requests.RequestException:
        logger.exception('Sign-in request failed')
        return None
    if resp.status_code == 200:
        return resp.json().get('idToken')
    return None


def is_safe_url(target):
    if not target:
        return False
    ref_url = urlparse(request.host_url)
    test_url = urlparse(target)
    return test_url.scheme in ('', 'http', 'https') and ref_url.netloc == test_url.netloc


def _avatar_url(path):
    """Absolute URL for a bundled avatar; Firebase Auth only accepts absolute photo URLs."""
    prefix = '/static/'
    if path.startswith(prefix):
        return url_for('static', filename=path[len(prefix):], _external=True)
    return path


@bp.route('/register', methods=['GET', 'POST'])
def register():
    current_user = get_current_user()
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))

    form = RegistrationForm()
    if form.validate_on_submit():
        auth = get_auth()
        try:
            firebase_user = auth.create_user(
                email=form.email.data,
                password=form.password.data,
                display_name=form.name.data,
            )
        except firebase_auth.EmailAlreadyExistsError:
            form.email.errors.append('Email ini sudah terdaftar oleh akun lain.')
            return render_template('auth/register.html', form=form)
        except (ValueError, FirebaseError) as e:
            logger.exception('Registration failed for %s', form.email.data)
            flash(f'Pendaftaran gagal: {e}', 'danger')
            return render_template('auth/register.html', form=form)

        dao.create_user(firebase_user.uid, {
            'name': form.name.data.strip(),
            'email': form.email.data,
            'role': form.role.data,
        })
        logger.info('Registered %s as %s', firebase_user.uid, form.role.data)
        flash('Pendaftaran berhasil! Silakan masuk.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('auth/register.html', form=form)


@bp.route('/login', methods=['GET', 'POST'])
def login():
    current_user = get_current_user()
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))

    form = LoginForm()

    saved_email = request.cookies.get('saved_email', '')
    if request.method == 'GET' and saved_email:
        form.email.data = saved_email
        form.remember_id.data = True

    if form.validate_on_submit():
        id_token = _firebase_sign_in(form.email.data, form.password.data)
        if id_token:
            auth = get_auth()
            try:
                session_cookie = auth.create_session_cookie(
                    id_token, expires_in=SESSION_LIFETIME
                )
            except FirebaseError:
                logger.exception('Creating session cookie failed')
                flash('Terjadi kesalahan saat masuk. Silakan coba lagi.', 'danger')
                return render_template('auth/login.html', form=form)

            session['firebase_session'] = session_cookie
            flash('Berhasil masuk!', 'success')
            next_page = request.args.get('next')
            if next_page and is_safe_url(next_page):
                response = make_response(redirect(next_page))
            else:
                response = make_response(redirect(url_for('main.dashboard')))

            if form.remember_id.data:
                response.set_cookie(
                    'saved_email', str(form.email.data),
                    max_age=60 * 60 * 24 * 365,
                )
            else:
                response.delete_cookie('saved_email')
            return response
        flash('Email atau kata sandi salah.', 'danger')

    return render_template('auth/login.html', form=form)


@bp.route('/logout')
@auth_required
def logout():
    session.pop('firebase_session', None)
    flash('Anda telah keluar.', 'success')
    return redirect(url_for('auth.login'))


@bp.route('/settings', methods=['GET', 'POST'])
@auth_required
def settings():
    user = get_current_user()
    form = SettingsForm(prefix='profile')
    password_form = PasswordChangeForm(prefix='password')

    if request.method == 'GET':
        form.name.data = user.name

    if form.submit.data and form.validate_on_submit():
        updates = {'name': form.name.data.strip()}
        try:
            if form.photo.data:
                updates['photoURL'] = upload_profile_image(user.uid, form.photo.data)
            elif form.avatar.data:
                updates['photoURL'] = _avatar_url(form.avatar.data)
        except UploadError as e:
            flash(str(e), 'danger')
            return render_template('auth/settings.html', form=form, password_form=password_form)

        dao.update_user(user.uid, updates)
        try:
            profile = {'display_name': updates['name']}
            if 'photoURL' in updates:
                profile['photo_url'] = updates['photoURL']
            get_auth().update_user(user.uid, **profile)
        except (ValueError, FirebaseError):
            logger.exception('Updating auth profile of %s failed', user.uid)
        flash('Profil berhasil diperbarui.', 'success')
        return redirect(url_for('auth.settings'))

    if password_form.submit.data and password_form.validate_on_submit():
        try:
            get_auth().update_user(user.uid, password=password_form.new_password.data)
        except (ValueError, FirebaseError):
            logger.exception('Password change for %s failed', user.uid)
            flash('Gagal mengubah kata sandi.', 'danger')
        else:
            flash('Kata sandi berhasil diubah. Silakan masuk kembali.', 'success')
            session.pop('firebase_session', None)
            return redirect(url_for('auth.login'))

    return render_template('auth/settings.html', form=form, password_form=password_form)
