from enum import Enum
from typing import Iterable


class AppRole(str, Enum):
    """Platform roles, declared from highest to lowest priority."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"

    @property
    def priority(self) -> int:
        # lower value wins
        return _ROLE_PRIORITY[self]

    @classmethod
    def parse_many(cls, values: Iterable[str]) -> list["AppRole"]:
        """Known role names only; unknown strings are dropped."""
        known = {r.value: r for r in cls}
        return [known[v] for v in values if v in known]

    @classmethod
    def effective(cls, roles: Iterable["AppRole | str"]) -> "AppRole":
        """Highest-priority role held, `student` when the user holds none."""
        parsed = cls.parse_many(r.value if isinstance(r, AppRole) else r for r in roles)
        if not parsed:
            return cls.STUDENT
        return min(parsed, key=lambda r: r.priority)


_ROLE_PRIORITY = {
    AppRole.SUPER_ADMIN: 0,
    AppRole.ADMIN: 1,
    AppRole.INSTRUCTOR: 2,
    AppRole.STUDENT: 3,
}

ADMIN_ROLES = frozenset({AppRole.SUPER_ADMIN, AppRole.ADMIN})


def has_role(roles: Iterable[AppRole | str], role: AppRole) -> bool:
    return role in AppRole.parse_many(
        r.value if isinstance(r, AppRole) else r for r in roles
    )


def is_admin(roles: Iterable[AppRole | str]) -> bool:
    return AppRole.effective(roles) in ADMIN_ROLES


def is_super_admin(roles: Iterable[AppRole | str]) -> bool:
    return has_role(roles, AppRole.SUPER_ADMIN)


def is_instructor(roles: Iterable[AppRole | str]) -> bool:
    return AppRole.effective(roles).priority <= AppRole.INSTRUCTOR.priority


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AccessReason(str, Enum):
    ENROLLED = "enrolled"
    ADMIN_ACCESS = "admin_access"
    NOT_ENROLLED = "not_enrolled"
    COURSE_NOT_FOUND = "course_not_found"
    COURSE_NOT_PUBLISHED = "course_not_published"


class VideoSource(str, Enum):
    YOUTUBE = "youtube"
    UPLOAD = "upload"
    EXTERNAL = "external"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    COURSE = "course"
    CREDITS = "credits"


# Error strings returned by enroll_with_credits; clients match on them.
ENROLL_ERROR_INSUFFICIENT = "Insufficient credits"
ENROLL_ERROR_ALREADY_ENROLLED = "Already enrolled in this course"
ENROLL_ERROR_COURSE_NOT_FOUND = "Course not found"
ENROLL_ERROR_COURSE_UNAVAILABLE = "Course is not available"
ENROLL_ERROR_PROFILE_NOT_FOUND = "Profile not found"
