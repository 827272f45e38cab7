"""Account management service."""

import logging

from django.db import transaction
from django.contrib.auth import get_user_model
from uuid import UUID

from .exceptions import PasswordConfirmationError

User = get_user_model()

logger = logging.getLogger(__name__)


@transaction.atomic
def delete_user_account(*, user_id: UUID, password: str) -> None:
    """
    GDPR-compliant account deletion (anonymization).

    The user's subscriptions are hard-deleted as part of anonymization;
    group memberships, expenses and splits stay so group ledgers still add up.

    Args:
        user_id: User's ID
        password: User's password for confirmation

    Raises:
        PasswordConfirmationError: If password is incorrect
    """
    user = (
        User.objects
        .select_for_update()
        .get(id=user_id)
    )

    if not user.check_password(password):
        raise PasswordConfirmationError("Invalid password")

    user.anonymize()
    logger.info("Anonymized user %s", user_id)
