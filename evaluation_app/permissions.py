from rest_framework.permissions import BasePermission, SAFE_METHODS

from accounts.models import Role

ADMIN_HR = (Role.ADMIN, Role.HR)


def _role(request):
    user = request.user
    if not (user and user.is_authenticated):
        return None
    return (user.role or "").upper()


class IsAdminOrHR(BasePermission):
    """
    Grants permission when the user is ADMIN **or** HR.
    """
    def has_permission(self, request, view):
        return _role(request) in ADMIN_HR

class ReadOnlyOrAdminHR(BasePermission):
    """
    - SAFE methods (GET / HEAD / OPTIONS) → any authenticated user.
    - Mutating methods (POST / PUT / PATCH / DELETE) → Admin or HR only.
    """
    def has_permission(self, request, view):
        if _role(request) is None:
            return False
        if request.method in SAFE_METHODS:
            return True
        return _role(request) in ADMIN_HR

class IsSelfOrAdminHR(BasePermission):

    """
    Users can view and edit their own account.
    HR & Admin can view everyone.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if _role(request) in ADMIN_HR:
            return True
        owner_id = getattr(obj, "user_id", None)
        return owner_id is not None and str(owner_id) == str(request.user.user_id)
