"""Which classes, subjects and students a signed-in user may see."""

from educentral import firestore_dao as dao
from educentral.roles import ADMIN, GURU


class TeacherScope:
    """Classes and subjects reachable by a teacher account.

    The teacher profile is found through its ``uid``; classes come from the
    profile's lessons, its homeroom classes and the account's
    ``assignedClassIds``.
    """

    def __init__(self, user):
        self.profile = dao.get_teacher_by_uid(user.uid)
        self.lessons = dao.get_lessons_by_teacher(self.profile['id']) if self.profile else []
        self.homeroom_classes = dao.get_homeroom_classes(self.profile['id']) if self.profile else []

        class_ids = {lesson.get('classId') for lesson in self.lessons}
        class_ids.update(c['id'] for c in self.homeroom_classes)
        class_ids.update(user.assigned_class_ids)
        self.class_ids = sorted(c for c in class_ids if c)
        self.subject_ids = sorted({lesson.get('subjectId') for lesson in self.lessons if lesson.get('subjectId')})

    @property
    def homeroom_class_ids(self):
        return [c['id'] for c in self.homeroom_classes]


def visible_classes(user):
    """Classes shown in class pickers and lists for ``user``."""
    if user.role == ADMIN:
        return dao.get_all_classes()
    if user.role == GURU:
        return dao.get_classes_by_ids(TeacherScope(user).class_ids)
    if user.class_id:
        school_class = dao.get_class(user.class_id)
        return [school_class] if school_class else []
    return []


def visible_class_ids(user):
    return [c['id'] for c in visible_classes(user)]


def visible_subjects(user):
    if user.role == GURU:
        scope = TeacherScope(user)
        subjects = {s['id']: s for s in dao.get_subjects_by_ids(scope.subject_ids)}
        subjects.update((s['id'], s) for s in dao.get_subjects_by_teacher_uid(user.uid))
        return sorted(subjects.values(), key=lambda s: (s.get('name') or '').lower())
    return dao.get_all_subjects()


def class_choices(classes, blank=None):
    choices = [('', blank)] if blank else []
    return choices + [(c['id'], c.get('name') or c['id']) for c in classes]


def can_manage_class(user, class_id):
    if user.role == ADMIN:
        return True
    if user.role == GURU:
        return class_id in TeacherScope(user).class_ids
    return False
