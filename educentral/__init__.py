import logging
from datetime import datetime

from flask import Flask, render_template
from flask_socketio import SocketIO
from flask_wtf.csrf import CSRFProtect
from config import Config

socketio = SocketIO()
csrf = CSRFProtect()

logger = logging.getLogger(__name__)

MONTHS = ['Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni', 'Juli',
          'Agustus', 'September', 'Oktober', 'November', 'Desember']


def _configure_logging(level_name):
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def format_date(value, with_time=False):
    """Render a Firestore timestamp or ISO date string as '5 Maret 2025'."""
    if not value:
        return '-'
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    text = f'{value.day} {MONTHS[value.month - 1]} {value.year}'
    if with_time and isinstance(value, datetime):
        text += value.strftime(', %H:%M')
    return text


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    _configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    csrf.init_app(app)

    # Initialize Firebase
    from educentral.firebase_init import init_firebase
    init_firebase(app.config)

    # CORS origins
    allowed_origins = []
    cors_origins = app.config.get('CORS_ALLOWED_ORIGINS', '')
    if cors_origins:
        for origin in cors_origins.split(','):
            origin = origin.strip()
            if origin:
                allowed_origins.append(origin)

    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins if allowed_origins else None,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'eventlet')
    )

    # Register current_user context processor and before_request
    from educentral.decorators import load_current_user, get_current_user
    from educentral.navigation import filter_nav_items
    from educentral.roles import role_display
    from educentral import firestore_dao as dao

    @app.before_request
    def before_request():
        load_current_user()

    @app.context_processor
    def inject_current_user():
        user = get_current_user()
        context = {'current_user': user, 'role_display': role_display, 'nav_items': [],
                   'unread_count': 0}
        if user.is_authenticated:
            context['nav_items'] = filter_nav_items(user.role)
            context['unread_count'] = dao.count_unread(user.uid)
        return context

    app.add_template_filter(format_date, 'date')

    @app.errorhandler(403)
    def forbidden(e):
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def not_found(e):
        return render_template('errors/404.html'), 404

    # Register blueprints
    from educentral.routes import (
        auth, main, user_admin, announcements, assignments, grades, results,
        attendance, classes, lessons, subjects, teachers, students, parents,
        notifications, events, exams, activities
    )
    app.register_blueprint(auth.bp)
    app.register_blueprint(main.bp)
    app.register_blueprint(user_admin.bp)
    app.register_blueprint(announcements.bp)
    app.register_blueprint(assignments.bp)
    app.register_blueprint(grades.bp)
    app.register_blueprint(results.bp)
    app.register_blueprint(attendance.bp)
    app.register_blueprint(classes.bp)
    app.register_blueprint(lessons.bp)
    app.register_blueprint(subjects.bp)
    app.register_blueprint(teachers.bp)
    app.register_blueprint(students.bp)
    app.register_blueprint(parents.bp)
    app.register_blueprint(notifications.bp)
    app.register_blueprint(events.bp)
    app.register_blueprint(exams.bp)
    app.register_blueprint(activities.bp)

    from educentral import sockets  # noqa: F401

    logger.info('EduCentral app created')
    return app
