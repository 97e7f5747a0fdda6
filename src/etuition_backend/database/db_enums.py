'''
Static string enums mirroring the status/role columns of the database.
'''
import enum


# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member names."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    STUDENT = 'student'
    TUTOR = 'tutor'
    ADMIN = 'admin'


class UserStatus(ListableEnum):
    ACTIVE = 'active'
    BLOCKED = 'blocked'


class TutorStatus(ListableEnum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class TuitionStatus(ListableEnum):
    PENDING = 'pending'
    ACTIVE = 'active'
    ASSIGNED = 'assigned'


class ApplicationStatus(ListableEnum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class PaymentStatus(ListableEnum):
    PAID = 'paid'
