from rest_framework import permissions


class IsGroupMember(permissions.BasePermission):
    """
    Permission: User must be a member of the group.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a Group instance
        return obj.has_member(request.user)


class IsGroupOwner(permissions.BasePermission):
    """
    Permission: User must be the group owner.
    """

    def has_object_permission(self, request, view, obj):
        return obj.owner_id == request.user.id
