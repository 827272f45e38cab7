"""
Custom permission classes for expenses app.
"""
from rest_framework.permissions import BasePermission


class IsGroupMemberForExpense(BasePermission):
    """
    Object-level check that the user belongs to the expense's group.

    Works for any object with a ``group`` attribute (expenses and
    settlements).
    """

    message = 'You must be a member of this group.'

    def has_object_permission(self, request, view, obj):
        return obj.group.has_member(request.user)
