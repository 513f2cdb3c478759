from rest_framework.permissions import BasePermission


def _role(request):
    return getattr(request.user, "role", None) if request.user else None


class IsAdminUser(BasePermission):
    """Allows access only to users with role 'admin'."""

    def has_permission(self, request, view):
        return _role(request) == "admin"


class IsClinicUser(BasePermission):
    """Clinic staff (role 'clinic') and admins."""

    def has_permission(self, request, view):
        return _role(request) in {"clinic", "admin"}


class CanAccessClinic(BasePermission):
    """
    For routes carrying `<clinic_id>`: admins reach every clinic, clinic staff
    only the clinic named in their token.
    """

    def has_permission(self, request, view):
        role = _role(request)
        if role == "admin":
            return True
        clinic_id = view.kwargs.get("clinic_id")
        return (
            role == "clinic"
            and clinic_id is not None
            and str(getattr(request.user, "clinic_id", "")) == str(clinic_id)
        )
