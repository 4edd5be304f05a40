import logging

from flask_socketio import emit, join_room, leave_room

from educentral import socketio
from educentral.decorators import get_current_user
from educentral import firestore_dao as dao

logger = logging.getLogger(__name__)


def user_room(uid):
    return f'user_{uid}'


def _get_socket_user():
    """Get current user from the Flask session context in Socket.IO events."""
    user = get_current_user()
    if user and user.is_authenticated:
        return user
    return None


@socketio.on('connect')
def handle_connect():
    user = _get_socket_user()
    if not user:
        return False
    join_room(user_room(user.uid))
    emit('unread_count', {'count': dao.count_unread(user.uid)})


@socketio.on('disconnect')
def handle_disconnect():
    user = _get_socket_user()
    if user:
        leave_room(user_room(user.uid))


@socketio.on('refresh_unread')
def handle_refresh_unread():
    user = _get_socket_user()
    if user:
        emit('unread_count', {'count': dao.count_unread(user.uid)})
