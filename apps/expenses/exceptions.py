"""
Domain exceptions for expenses app.

Split validation errors are plain exceptions raised by the allocation
engine and the services; views turn them into 400 responses. Errors a
view raises directly are DRF API exceptions.
"""
from rest_framework.exceptions import APIException


class ExpenseServiceError(Exception):
    """Base exception for expense service errors."""
    pass


class SplitValidationError(ExpenseServiceError):
    """Base class for every reason a split cannot be computed."""
    pass


class NoParticipantsError(SplitValidationError):
    """Raised when nobody is available to carry the cost."""
    pass


class InvalidAmountError(SplitValidationError):
    """Raised for non-positive, non-finite or over-precise amounts."""
    pass


class UnassignedItemError(SplitValidationError):
    """Raised when a non-shared item has no assignees."""
    pass


class InvalidSplitError(SplitValidationError):
    """Raised when split input is inconsistent or does not reconcile."""
    pass


class NonMemberParticipantError(SplitValidationError):
    """Raised when a split references a user outside the group."""
    pass


class InvalidGroupMembershipError(APIException):
    """User is not a member of the required group."""
    status_code = 403
    default_detail = 'You must be a member of this group.'
    default_code = 'invalid_group_membership'


class GroupNotFoundError(APIException):
    status_code = 404
    default_detail = 'Group not found.'
    default_code = 'group_not_found'
