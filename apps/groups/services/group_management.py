"""
Group management service.

Handles group create/delete operations with proper transaction safety.
"""

import logging
import secrets
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import Prefetch

from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole

from .exceptions import (
    GroupNotFoundError,
    InsufficientPermissionsError,
    GroupLimitReachedError,
)

logger = logging.getLogger(__name__)


def ensure_group_capacity(user: User) -> None:
    """
    Check that the user may belong to one more group.

    Pro users are unlimited. Free users are capped at
    settings.FREE_GROUP_LIMIT memberships.

    Raises:
        GroupLimitReachedError: If a free-tier user is at the limit
    """
    if user.has_pro_access():
        return

    limit = settings.FREE_GROUP_LIMIT
    if GroupMembership.objects.filter(user=user).count() >= limit:
        raise GroupLimitReachedError(
            f"Free plan is limited to {limit} groups. Upgrade to Pro for unlimited groups."
        )


def create_group(
    *,
    name: str,
    owner: User,
    description: str = '',
    max_retries: int = 5
) -> Group:
    """
    Create a new group and add the creator as owner.

    This is a multi-step operation wrapped in a transaction:
    1. Check the owner's tier allows another group
    2. Generate unique invite code
    3. Create the group
    4. Create owner membership

    Args:
        name: Group name
        owner: User who will own the group
        description: Optional group description
        max_retries: Maximum attempts to generate unique invite code

    Returns:
        Created Group instance

    Raises:
        GroupLimitReachedError: If the owner is a free user at the group limit
        RuntimeError: If cannot generate unique invite code after retries
    """
    ensure_group_capacity(owner)

    # Retry logic outside transaction to handle invite code collisions
    for attempt in range(max_retries):
        invite_code = secrets.token_urlsafe(12)[:16]

        try:
            with transaction.atomic():
                group = Group.objects.create(
                    name=name,
                    owner=owner,
                    description=description,
                    invite_code=invite_code
                )

                GroupMembership.objects.create(
                    user=owner,
                    group=group,
                    role=GroupRole.OWNER
                )

                logger.info("Group %s created by %s", group.id, owner.id)
                return group

        except IntegrityError:
            # Invite code collision (very rare)
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique invite code after {max_retries} attempts"
                )
            continue

    raise RuntimeError("Unexpected error in group creation")


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with optimized queries.

    Args:
        group_id: UUID of the group

    Returns:
        Group instance

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_related('owner')
            .prefetch_related(
                Prefetch(
                    'memberships',
                    queryset=GroupMembership.objects.select_related('user')
                )
            )
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


@transaction.atomic
def delete_group(*, group_id: UUID, user: User) -> None:
    """
    Delete a group (owner only).

    Cascading deletes remove memberships, expenses with their splits,
    items and assignments, and settlements.

    Args:
        group_id: UUID of the group
        user: User requesting deletion (must be owner)

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if group.owner_id != user.id:
        raise InsufficientPermissionsError("Only the group owner can delete the group")

    group.delete()
    logger.info("Group %s deleted by %s", group_id, user.id)
