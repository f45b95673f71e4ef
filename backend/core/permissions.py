from rest_framework.permissions import BasePermission

METHOD_ACTIONS = {
    'GET': 'view',
    'HEAD': 'view',
    'OPTIONS': 'view',
    'POST': 'create',
    'PUT': 'edit',
    'PATCH': 'edit',
    'DELETE': 'delete',
}


class IsAdminRole(BasePermission):
    """Allows access only to users with the admin role (or superusers)"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


def module_permission(module, action=None):
    """
    Build a permission class checking the user's flags for module.

    The flag is taken from the HTTP method unless action is given, which is
    used for POST endpoints that really edit an existing object.
    """
    class ModulePermission(BasePermission):
        message = f"You do not have permission to perform this action on {module}."

        def has_permission(self, request, view):
            user = request.user
            if not user or not user.is_authenticated:
                return False
            required = action or METHOD_ACTIONS.get(request.method, 'view')
            return user.has_module_permission(module, required)

    ModulePermission.__name__ = f"{module.title().replace('_', '')}Permission"
    return ModulePermission
