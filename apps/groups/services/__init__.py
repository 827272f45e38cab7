"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    GroupsServiceError,
    GroupNotFoundError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    NotMemberError,
    OwnerCannotLeaveError,
    InsufficientPermissionsError,
    GroupLimitReachedError,
)

from .group_management import (
    create_group,
    delete_group,
    get_group_by_id,
    ensure_group_capacity,
)

from .membership_management import (
    join_group,
    leave_group,
    get_group_members,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'GroupNotFoundError',
    'InvalidInviteCodeError',
    'AlreadyMemberError',
    'NotMemberError',
    'OwnerCannotLeaveError',
    'InsufficientPermissionsError',
    'GroupLimitReachedError',

    # Group Management
    'create_group',
    'delete_group',
    'get_group_by_id',
    'ensure_group_capacity',

    # Membership Management
    'join_group',
    'leave_group',
    'get_group_members',
]
