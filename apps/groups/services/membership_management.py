"""
Membership management service.

Handles group membership operations with concurrency protection.
"""

from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole

from .exceptions import (
    GroupNotFoundError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    NotMemberError,
    OwnerCannotLeaveError,
)
from .group_management import ensure_group_capacity


@transaction.atomic
def join_group(
    *,
    group_id: UUID,
    user: User,
    invite_code: str
) -> GroupMembership:
    """
    Join a group using an invite code.

    Uses row-level locking to prevent race conditions when checking
    and creating memberships.

    Args:
        group_id: UUID of the group
        user: User joining the group
        invite_code: Invite code for verification

    Returns:
        Created GroupMembership instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InvalidInviteCodeError: If invite code is incorrect
        AlreadyMemberError: If user is already a member
        GroupLimitReachedError: If a free-tier user is at the group limit
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if group.invite_code != invite_code:
        raise InvalidInviteCodeError("Invalid invite code")

    if group.has_member(user):
        raise AlreadyMemberError(f"User is already a member of {group.name}")

    ensure_group_capacity(user)

    try:
        membership = GroupMembership.objects.create(
            user=user,
            group=group,
            role=GroupRole.MEMBER
        )
    except IntegrityError:
        raise AlreadyMemberError(f"User is already a member of {group.name}")

    return membership


@transaction.atomic
def leave_group(*, group_id: UUID, user: User) -> None:
    """
    Leave a group.

    Owner cannot leave their own group; they must delete it instead.
    Past expenses and splits involving the user are kept.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If user is not a member
        OwnerCannotLeaveError: If user is the owner
    """
    try:
        group = Group.objects.get(id=group_id)
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if group.owner_id == user.id:
        raise OwnerCannotLeaveError(
            "Group owner cannot leave. Delete the group instead."
        )

    try:
        membership = (
            GroupMembership.objects
            .select_for_update()
            .get(user=user, group=group)
        )
    except GroupMembership.DoesNotExist:
        raise NotMemberError(f"User is not a member of {group.name}")

    membership.delete()


def get_group_members(*, group_id: UUID) -> QuerySet[GroupMembership]:
    """
    Get all members of a group with optimized queries.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    return (
        GroupMembership.objects
        .filter(group_id=group_id)
        .select_related('user')
        .order_by('joined_at')
    )
