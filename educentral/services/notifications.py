import logging

from educentral import firestore_dao as dao
from educentral import socketio
from educentral.roles import ADMIN, GURU
from educentral.sockets import user_room

logger = logging.getLogger(__name__)

NEW_ASSIGNMENT = 'new_assignment'
NEW_EXAM = 'new_exam'
NEW_ANNOUNCEMENT = 'new_announcement'

# Filter tabs on the notifications page
FILTERS = {
    'all': None,
    'tugas_ujian': (NEW_ASSIGNMENT, NEW_EXAM),
    'pengumuman': (NEW_ANNOUNCEMENT,),
}


def truncate(text, limit=60):
    text = text or ''
    return text if len(text) <= limit else text[:limit].rstrip() + '...'


def _push(notification):
    """Send a live badge update to the recipient's Socket.IO room."""
    try:
        socketio.emit('notification', {
            'title': notification['title'],
            'description': notification['description'],
            'href': notification['href'],
            'type': notification['type'],
        }, room=user_room(notification['userId']))
    except (RuntimeError, ConnectionError):
        logger.warning('Live push to %s failed', notification['userId'], exc_info=True)


def notify_users(user_ids, title, description, href, notif_type):
    """Create one notification per distinct user id. Returns the count."""
    recipients = list(dict.fromkeys(u for u in user_ids if u))
    if not recipients:
        return 0
    notifications = [dao.build_notification(uid, title, description, href, notif_type)
                     for uid in recipients]
    dao.create_notifications(notifications)
    for n in notifications:
        _push(n)
    logger.info('Sent %d %s notifications', len(notifications), notif_type)
    return len(notifications)


def class_recipients(class_id):
    """User ids of the students in a class plus their linked parents."""
    students = dao.get_students_by_class(class_id)
    student_ids = [s['id'] for s in students]
    parents = dao.get_parent_users_of_students(student_ids)
    return student_ids + [p['id'] for p in parents]


def notify_class(class_id, title, description, href, notif_type, creator_uid=None):
    recipients = class_recipients(class_id)
    if creator_uid:
        recipients.append(creator_uid)
    return notify_users(recipients, title, description, href, notif_type)


def announcement_recipients(announcement, creator):
    """Users who should be told about a new announcement.

    Admin posts reach every user of the targeted roles. Teacher posts are
    scoped to the target classes: students and parents by class, teachers
    by their assigned classes. The creator is always included.
    """
    roles = announcement.get('targetAudience') or []
    class_ids = announcement.get('targetClassIds') or []
    recipients = [creator.uid]

    if creator.role == ADMIN and not class_ids:
        for role in roles:
            recipients.extend(u['id'] for u in dao.get_users_by_role(role))
        return recipients

    for role in roles:
        if role == ADMIN:
            recipients.extend(u['id'] for u in dao.get_users_by_role(ADMIN))
        elif role == GURU:
            recipients.extend(u['id'] for u in dao.get_teachers_in_classes(class_ids))
        else:
            recipients.extend(u['id'] for u in dao.get_users_by_role_in_classes(role, class_ids))
    return recipients


def notify_announcement(announcement, creator):
    title = f"Pengumuman Baru: {truncate(announcement.get('title'), 40)}"
    description = truncate(announcement.get('content'), 80)
    recipients = announcement_recipients(announcement, creator)
    return notify_users(recipients, title, description, '/announcements', NEW_ANNOUNCEMENT)


def notify_assignment(assignment, creator_uid, updated=False):
    prefix = 'Tugas Diperbarui' if updated else 'Tugas Baru'
    title = f"{prefix}: {truncate(assignment.get('title'), 40)}"
    description = f"{assignment.get('subjectName') or ''} - {assignment.get('className') or ''}".strip(' -')
    return notify_class(assignment['classId'], title, description, '/assignments',
                        NEW_ASSIGNMENT, creator_uid=creator_uid)


def notify_exam(exam, creator_uid):
    title = f"Ujian Baru: {truncate(exam.get('title'), 40)}"
    description = f"{exam.get('subjectName') or ''} pada {exam.get('date') or '-'}"
    return notify_class(exam['classId'], title, description, '/exams', NEW_EXAM,
                        creator_uid=creator_uid)
