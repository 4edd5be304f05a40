"""
Firestore Data Access Object (DAO) layer.

Route and service modules call these functions instead of querying
Firestore directly. Every read returns plain dicts carrying the document id
under ``'id'``; field names keep the camelCase used by the other clients of
the same Firebase project.
"""

import logging
from datetime import datetime, timezone, date as date_type

from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from educentral.firebase_init import get_db
from educentral.roles import GURU, SISWA, ORANGTUA

logger = logging.getLogger(__name__)

# Firestore rejects 'in' filters with more than 30 values
IN_QUERY_LIMIT = 30
# Firestore batches are limited to 500 writes
BATCH_LIMIT = 500

DELETE_FIELD = firestore.DELETE_FIELD


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _doc_to_dict(doc_snapshot):
    """Convert a Firestore DocumentSnapshot to a dict with 'id' field."""
    if not doc_snapshot.exists:
        return None
    d = doc_snapshot.to_dict()
    d['id'] = doc_snapshot.id
    return d


def _query_to_list(query_ref):
    """Run a query and return a list of dicts."""
    return [_doc_to_dict(doc) for doc in query_ref.stream()]


def _now():
    return datetime.now(timezone.utc)


def chunked(values, size=IN_QUERY_LIMIT):
    """Split ``values`` into lists of at most ``size`` items, dropping duplicates."""
    unique = list(dict.fromkeys(v for v in values if v))
    return [unique[i:i + size] for i in range(0, len(unique), size)]


def chunked_in_query(collection, field, values, filters=None):
    """Run ``field in values`` against ``collection`` in chunks of 30.

    ``filters`` is an optional list of extra ``(field, op, value)`` tuples
    applied to every chunk. Returns the concatenated list of dicts.
    """
    results = []
    for chunk in chunked(values):
        query = get_db().collection(collection)
        for f, op, value in filters or []:
            query = query.where(filter=FieldFilter(f, op, value))
        query = query.where(filter=FieldFilter(field, 'in', chunk))
        results.extend(_query_to_list(query))
    return results


def get_docs_by_ids(collection, doc_ids):
    """Fetch documents by id, 30 per query. Missing ids are skipped."""
    results = []
    col = get_db().collection(collection)
    for chunk in chunked(doc_ids):
        docs = col.where(filter=FieldFilter('__name__', 'in',
                                            [col.document(doc_id) for doc_id in chunk])).stream()
        results.extend(_doc_to_dict(doc) for doc in docs)
    return results


def _commit_batched(operations):
    """Apply ``(op, ref, data)`` tuples in batches of 500. Returns the count."""
    db = get_db()
    batch = db.batch()
    count = 0
    for op, ref, data in operations:
        if op == 'set':
            batch.set(ref, data)
        elif op == 'update':
            batch.update(ref, data)
        else:
            batch.delete(ref)
        count += 1
        if count % BATCH_LIMIT == 0:
            batch.commit()
            batch = db.batch()
    if count % BATCH_LIMIT != 0:
        batch.commit()
    return count


def start_of_day(value):
    """Normalise a date or datetime to midnight UTC."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date_type):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value


def _add(collection, data):
    data.setdefault('createdAt', _now())
    _, doc_ref = get_db().collection(collection).add(data)
    return doc_ref.id


def _get(collection, doc_id):
    if not doc_id:
        return None
    return _doc_to_dict(get_db().collection(collection).document(doc_id).get())


def _all(collection):
    return _query_to_list(get_db().collection(collection))


def _where(collection, field, op, value):
    return _query_to_list(
        get_db().collection(collection).where(filter=FieldFilter(field, op, value))
    )


def _update(collection, doc_id, data):
    get_db().collection(collection).document(doc_id).update(data)


def _delete(collection, doc_id):
    get_db().collection(collection).document(doc_id).delete()


def _by_name(items):
    return sorted(items, key=lambda d: (d.get('name') or '').lower())


# ========================================================================
# Users  (collection: users)
# ========================================================================

def get_user(uid):
    """Get a user document by UID. Returns dict or None."""
    return _get('users', uid)


def get_all_users():
    return _by_name(_all('users'))


def get_users_by_role(role):
    return _by_name(_where('users', 'role', '==', role))


def count_users_by_role(role):
    return len(_where('users', 'role', '==', role))


def create_user(uid, data):
    """Create the profile document for an auth account (document id = uid)."""
    data.setdefault('createdAt', _now())
    data['uid'] = uid
    get_db().collection('users').document(uid).set(data)
    return uid


def add_user_record(data):
    """Add a users document that has no login account (e.g. a student record)."""
    data = dict(data, uid=None)
    return _add('users', data)


def update_user(uid, data):
    _update('users', uid, data)


def delete_user(uid):
    _delete('users', uid)


def get_students_by_class(class_id):
    students = _query_to_list(
        get_db().collection('users')
        .where(filter=FieldFilter('role', '==', SISWA))
        .where(filter=FieldFilter('classId', '==', class_id))
    )
    return sort_students(students)


def get_students_by_classes(class_ids):
    students = chunked_in_query('users', 'classId', class_ids,
                                filters=[('role', '==', SISWA)])
    return sort_students(students)


def get_users_by_role_in_classes(role, class_ids):
    """Users of ``role`` whose class (own or child's) is one of ``class_ids``."""
    field = 'linkedStudentClassId' if role == ORANGTUA else 'classId'
    return chunked_in_query('users', field, class_ids, filters=[('role', '==', role)])


def get_teachers_in_classes(class_ids):
    """Teacher accounts assigned to any of ``class_ids``."""
    results = {}
    for chunk in chunked(class_ids):
        query = (
            get_db().collection('users')
            .where(filter=FieldFilter('role', '==', GURU))
            .where(filter=FieldFilter('assignedClassIds', 'array_contains_any', chunk))
        )
        for user in _query_to_list(query):
            results[user['id']] = user
    return list(results.values())


def get_parent_users_of_students(student_ids):
    return chunked_in_query('users', 'linkedStudentId', student_ids,
                            filters=[('role', '==', ORANGTUA)])


def sort_students(students):
    def key(s):
        number = s.get('attendanceNumber')
        return (number is None, number or 0, (s.get('name') or '').lower())
    return sorted(students, key=key)


# ========================================================================
# Teacher profiles  (collection: teachers)
# ========================================================================

def get_teacher(teacher_id):
    return _get('teachers', teacher_id)


def get_all_teachers():
    return _by_name(_all('teachers'))


def get_teacher_by_uid(uid):
    docs = (
        get_db().collection('teachers')
        .where(filter=FieldFilter('uid', '==', uid))
        .limit(1)
        .stream()
    )
    for doc in docs:
        return _doc_to_dict(doc)
    return None


def get_unlinked_teachers():
    return [t for t in get_all_teachers() if not t.get('uid')]


def create_teacher(data):
    data.setdefault('uid', None)
    return _add('teachers', data)


def update_teacher(teacher_id, data):
    _update('teachers', teacher_id, data)


def delete_teacher(teacher_id):
    _delete('teachers', teacher_id)


def link_teacher(teacher_id, uid):
    _update('teachers', teacher_id, {'uid': uid})


def unlink_profiles(collection, uid):
    """Clear ``uid`` on every ``collection`` profile that holds it. Returns the ids."""
    unlinked = []
    for doc in get_db().collection(collection).where(filter=FieldFilter('uid', '==', uid)).stream():
        doc.reference.update({'uid': None})
        unlinked.append(doc.id)
    return unlinked


# ========================================================================
# Parent profiles  (collection: parents)
# ========================================================================

def get_parent(parent_id):
    return _get('parents', parent_id)


def get_all_parents():
    return _by_name(_all('parents'))


def get_unlinked_parents():
    return [p for p in get_all_parents() if not p.get('uid')]


def create_parent(data):
    data.setdefault('uid', None)
    return _add('parents', data)


def update_parent(parent_id, data):
    _update('parents', parent_id, data)


def delete_parent(parent_id):
    _delete('parents', parent_id)


def link_parent(parent_id, uid):
    _update('parents', parent_id, {'uid': uid})


# ========================================================================
# Classes  (collection: classes)
# ========================================================================

def get_class(class_id):
    return _get('classes', class_id)


def get_all_classes():
    return _by_name(_all('classes'))


def get_classes_by_ids(class_ids):
    return _by_name(get_docs_by_ids('classes', class_ids))


def get_homeroom_classes(teacher_id):
    return _by_name(_where('classes', 'teacherId', '==', teacher_id))


def create_class(data):
    return _add('classes', data)


def update_class(class_id, data):
    _update('classes', class_id, data)


def delete_class(class_id):
    _delete('classes', class_id)


def count_classes():
    return len(_all('classes'))


# ========================================================================
# Subjects  (collection: subjects)
# ========================================================================

def get_subject(subject_id):
    return _get('subjects', subject_id)


def get_all_subjects():
    return _by_name(_all('subjects'))


def get_subjects_by_teacher_uid(uid):
    return _by_name(_where('subjects', 'teacherUid', '==', uid))


def get_subjects_by_ids(subject_ids):
    return _by_name(get_docs_by_ids('subjects', subject_ids))


def create_subject(data):
    return _add('subjects', data)


def update_subject(subject_id, data):
    _update('subjects', subject_id, data)


def delete_subject(subject_id):
    _delete('subjects', subject_id)


def count_subjects():
    return len(_all('subjects'))


# ========================================================================
# Lessons  (collection: lessons)
# ========================================================================

DAYS_OF_WEEK = ['Senin', 'Selasa', 'Rabu', 'Kamis', 'Jumat', 'Sabtu']


def sort_lessons(lessons):
    def key(lesson):
        day = lesson.get('dayOfWeek')
        day_index = DAYS_OF_WEEK.index(day) if day in DAYS_OF_WEEK else len(DAYS_OF_WEEK)
        return (day_index, lesson.get('startTime') or '')
    return sorted(lessons, key=key)


def get_lesson(lesson_id):
    return _get('lessons', lesson_id)


def get_all_lessons():
    return sort_lessons(_all('lessons'))


def get_lessons_by_teacher(teacher_id):
    return sort_lessons(_where('lessons', 'teacherId', '==', teacher_id))


def get_lessons_by_class(class_id):
    return sort_lessons(_where('lessons', 'classId', '==', class_id))


def get_class_ids_for_teacher(teacher_id):
    """Class ids the teacher profile has at least one scheduled lesson in."""
    class_ids = [lesson.get('classId') for lesson in get_lessons_by_teacher(teacher_id)]
    return sorted({c for c in class_ids if c})


def create_lesson(data):
    return _add('lessons', data)


def update_lesson(lesson_id, data):
    _update('lessons', lesson_id, data)


def delete_lesson(lesson_id):
    _delete('lessons', lesson_id)


# ========================================================================
# Assignments  (collection: assignments)
# ========================================================================

def _by_due_date_desc(assignments):
    return sorted(
        assignments,
        key=lambda a: a.get('dueDate') or datetime.min.replace(tzinfo=timezone.utc),
        reverse=True,
    )


def get_assignment(assignment_id):
    return _get('assignments', assignment_id)


def get_all_assignments():
    return _by_due_date_desc(_all('assignments'))


def get_assignments_by_class(class_id):
    return _by_due_date_desc(_where('assignments', 'classId', '==', class_id))


def get_assignments_by_classes(class_ids):
    return _by_due_date_desc(chunked_in_query('assignments', 'classId', class_ids))


def create_assignment(data):
    return _add('assignments', data)


def update_assignment(assignment_id, data):
    data['updatedAt'] = _now()
    _update('assignments', assignment_id, data)


def delete_assignment(assignment_id):
    """Delete an assignment together with all of its submissions."""
    db = get_db()
    submissions = (
        db.collection('assignmentSubmissions')
        .where(filter=FieldFilter('assignmentId', '==', assignment_id))
        .stream()
    )
    ops = [('delete', doc.reference, None) for doc in submissions]
    ops.append(('delete', db.collection('assignments').document(assignment_id), None))
    return _commit_batched(ops) - 1


# ========================================================================
# Submissions  (collection: assignmentSubmissions)
# ========================================================================

def get_submission(assignment_id, student_id):
    docs = (
        get_db().collection('assignmentSubmissions')
        .where(filter=FieldFilter('assignmentId', '==', assignment_id))
        .where(filter=FieldFilter('studentId', '==', student_id))
        .limit(1)
        .stream()
    )
    for doc in docs:
        return _doc_to_dict(doc)
    return None


def get_submissions_by_assignment(assignment_id):
    subs = _where('assignmentSubmissions', 'assignmentId', '==', assignment_id)
    return sorted(subs, key=lambda s: (s.get('studentName') or '').lower())


def get_submissions_for_assignments(assignment_ids, student_id=None):
    filters = [('studentId', '==', student_id)] if student_id else None
    return chunked_in_query('assignmentSubmissions', 'assignmentId', assignment_ids, filters=filters)


def save_submission(data):
    """Create or update the single submission of a student for an assignment.

    Returns ``(submission_id, created)``.
    """
    existing = get_submission(data['assignmentId'], data['studentId'])
    data['submittedAt'] = _now()
    if existing:
        _update('assignmentSubmissions', existing['id'], data)
        return existing['id'], False
    return _add('assignmentSubmissions', data), True


# ========================================================================
# Results  (collection: results)
# ========================================================================

def _by_assessment_date_desc(results):
    return sorted(
        results,
        key=lambda r: r.get('dateOfAssessment') or datetime.min.replace(tzinfo=timezone.utc),
        reverse=True,
    )


def get_result(result_id):
    return _get('results', result_id)


def get_all_results():
    return _by_assessment_date_desc(_all('results'))


def get_results_by_student(student_id):
    return _by_assessment_date_desc(_where('results', 'studentId', '==', student_id))


def get_results_for_assignments(assignment_ids, student_id=None):
    filters = [('studentId', '==', student_id)] if student_id else None
    return chunked_in_query('results', 'assignmentId', assignment_ids, filters=filters)


def create_result(data):
    return _add('results', data)


def update_result(result_id, data):
    data['updatedAt'] = _now()
    _update('results', result_id, data)


def delete_result(result_id):
    _delete('results', result_id)


# ========================================================================
# Notifications  (collection: notifications)
# ========================================================================

def build_notification(user_id, title, description, href, notif_type):
    return {
        'userId': user_id,
        'title': title,
        'description': description,
        'href': href,
        'read': False,
        'type': notif_type,
        'createdAt': _now(),
    }


def create_notifications(notifications):
    """Write notification dicts in batches. Returns the created ids."""
    col = get_db().collection('notifications')
    ops = []
    ids = []
    for data in notifications:
        ref = col.document()
        ids.append(ref.id)
        ops.append(('set', ref, data))
    _commit_batched(ops)
    return ids


def get_notifications(user_id, types=None):
    notifs = _where('notifications', 'userId', '==', user_id)
    if types:
        notifs = [n for n in notifs if n.get('type') in types]
    return sorted(notifs, key=lambda n: n.get('createdAt') or _now(), reverse=True)


def get_notification(notif_id):
    return _get('notifications', notif_id)


def mark_read(notif_id):
    _update('notifications', notif_id, {'read': True})


def mark_all_read(user_id):
    """Mark all notifications for a user as read. Returns how many changed."""
    docs = (
        get_db().collection('notifications')
        .where(filter=FieldFilter('userId', '==', user_id))
        .where(filter=FieldFilter('read', '==', False))
        .stream()
    )
    return _commit_batched(('update', doc.reference, {'read': True}) for doc in docs)


def count_unread(user_id):
    docs = (
        get_db().collection('notifications')
        .where(filter=FieldFilter('userId', '==', user_id))
        .where(filter=FieldFilter('read', '==', False))
        .stream()
    )
    return sum(1 for _ in docs)


# ========================================================================
# Attendance  (collection: student_attendances)
# ========================================================================

def attendance_doc_id(class_id, date_str):
    return f'{class_id}_{date_str}'


def get_attendance(class_id, date_str):
    return _get('student_attendances', attendance_doc_id(class_id, date_str))


def save_attendance(class_id, date_str, data):
    """Merge the attendance sheet of one class on one day.

    ``createdAt`` is only written the first time the sheet is saved.
    Returns True when the sheet was created.
    """
    ref = get_db().collection('student_attendances').document(attendance_doc_id(class_id, date_str))
    created = not ref.get().exists
    payload = dict(data, classId=class_id, date=date_str, lastUpdatedAt=_now())
    if created:
        payload['createdAt'] = _now()
    ref.set(payload, merge=True)
    return created


def get_attendance_by_class(class_id):
    sheets = _where('student_attendances', 'classId', '==', class_id)
    return sorted(sheets, key=lambda s: s.get('date') or '', reverse=True)


# ========================================================================
# Announcements  (collection: announcements)
# ========================================================================

def get_announcement(announcement_id):
    return _get('announcements', announcement_id)


def get_all_announcements():
    items = _all('announcements')
    return sorted(items, key=lambda a: a.get('date') or _now(), reverse=True)


def create_announcement(data):
    data.setdefault('date', _now())
    return _add('announcements', data)


def update_announcement(announcement_id, data):
    _update('announcements', announcement_id, data)


def delete_announcement(announcement_id):
    _delete('announcements', announcement_id)


# ========================================================================
# Events  (collection: events)
# ========================================================================

def get_event(event_id):
    return _get('events', event_id)


def get_all_events():
    items = _all('events')
    return sorted(items, key=lambda e: (e.get('date') or '', e.get('startTime') or ''))


def create_event(data):
    return _add('events', data)


def update_event(event_id, data):
    _update('events', event_id, data)


def delete_event(event_id):
    _delete('events', event_id)


# ========================================================================
# Exams  (collection: exams)
# ========================================================================

def _by_exam_date(exams):
    return sorted(exams, key=lambda e: (e.get('date') or '', e.get('startTime') or ''))


def get_exam(exam_id):
    return _get('exams', exam_id)


def get_all_exams():
    return _by_exam_date(_all('exams'))


def get_exams_by_classes(class_ids):
    return _by_exam_date(chunked_in_query('exams', 'classId', class_ids))


def create_exam(data):
    return _add('exams', data)


def update_exam(exam_id, data):
    _update('exams', exam_id, data)


def delete_exam(exam_id):
    _delete('exams', exam_id)


# ========================================================================
# Activities  (collection: activities, subcollection: media)
# ========================================================================

def _media_col(activity_id):
    return get_db().collection('activities').document(activity_id).collection('media')


def get_activity(activity_id):
    return _get('activities', activity_id)


def get_all_activities():
    items = _all('activities')
    return sorted(items, key=lambda a: a.get('date') or '', reverse=True)


def create_activity(data):
    return _add('activities', data)


def get_activity_media(activity_id):
    media = _query_to_list(_media_col(activity_id))
    return sorted(media, key=lambda m: m.get('createdAt') or _now())


def get_activity_media_item(activity_id, media_id):
    return _doc_to_dict(_media_col(activity_id).document(media_id).get())


def add_activity_media(activity_id, data):
    data.setdefault('createdAt', _now())
    _, doc_ref = _media_col(activity_id).add(data)
    return doc_ref.id


def delete_activity_media(activity_id, media_id):
    _media_col(activity_id).document(media_id).delete()


def delete_activity(activity_id):
    """Delete the activity and its media documents in one batch.

    Returns the storage paths of the deleted media so the caller can remove
    the objects.
    """
    media_docs = list(_media_col(activity_id).stream())
    paths = [doc.to_dict().get('storagePath') for doc in media_docs]
    ops = [('delete', doc.reference, None) for doc in media_docs]
    ops.append(('delete', get_db().collection('activities').document(activity_id), None))
    _commit_batched(ops)
    return [p for p in paths if p]

