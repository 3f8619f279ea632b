"""Admin site customizations for the Q&A back-office."""

from django.contrib import admin

from .moderation import get_role


class QandaAdminSite(admin.AdminSite):
    """Admin site which only lets in staff accounts holding a moderation role."""

    site_header = "Q&A Admin"
    site_title = "Q&A"
    index_title = "Moderation"

    def has_permission(self, request) -> bool:
        """Require an active staff account with at least the user role.

        Superusers always pass. Other staff accounts must resolve to a role
        through ``qanda.moderation.get_role``; the individual ``ModelAdmin``
        classes then apply the access-control matrix per operation.

        Args:
            request (HttpRequest): Current admin request.

        Returns:
            bool: True if the request may use the admin site at all.
        """
        return super().has_permission(request) and get_role(request.user) is not None
