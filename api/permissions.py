from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from accounts.models import OrganizationMembership


class IsOrganizationCoach(BasePermission):
    """
    Allows access to coaches and admins of an organization.

    The organization comes from the ``X-Organization-Id`` header, or from the
    caller's only coach membership when the header is omitted. On success it
    is attached to the request as ``request.organization``.
    """
    message = 'Coach access required'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        memberships = OrganizationMembership.objects.filter(
            user=request.user, role__in=OrganizationMembership.COACH_ROLES
        ).select_related('organization')

        org_id = request.headers.get('X-Organization-Id')
        if org_id:
            if not org_id.isdigit():
                raise PermissionDenied('Invalid organization')
            memberships = memberships.filter(organization_id=int(org_id))

        memberships = list(memberships[:2])
        if not memberships:
            return False
        if len(memberships) > 1:
            raise PermissionDenied('Multiple organizations: set the X-Organization-Id header')

        request.organization = memberships[0].organization
        return True
