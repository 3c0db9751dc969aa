from internlink.constants.constants import STAFF_ROLES, UserRole
from internlink.models.user import User


def check_staff_role(user: User) -> bool:
    """Check if user is an admin, tech lead or college point-of-contact."""
    return user.role in STAFF_ROLES


def check_admin_role(user: User) -> bool:
    return user.role == UserRole.admin
