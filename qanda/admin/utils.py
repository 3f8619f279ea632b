from django.http import HttpRequest

from ..fields import Page, visible_descriptors
from ..moderation import get_role


class DescriptorAdminMixin:
    """
    Build ``ModelAdmin`` configuration from a list of ``FieldDescriptor``.

    Subclasses set ``field_descriptors``; changelist columns, form fieldsets,
    read-only fields, labels and help text are then derived per request from
    the descriptors the current user's role may see.
    """

    field_descriptors = ()

    def visible_fields(self, request: HttpRequest, page: Page) -> list:
        return visible_descriptors(self.field_descriptors, page, get_role(request.user))

    def form_fields(self, request: HttpRequest, obj=None) -> list:
        """
        Descriptors shown on the add page (form only) or on the change page
        (form plus detail-only fields).
        """
        role = get_role(request.user)
        pages = (Page.FORM,) if obj is None else (Page.FORM, Page.DETAIL)
        return [
            i
            for i in self.field_descriptors
            if i.is_form_field and any(i.is_visible(page, role) for page in pages)
        ]

    def get_list_display(self, request: HttpRequest):
        return [
            i.list_column or i.name for i in self.visible_fields(request, Page.LIST)
        ]

    def get_fieldsets(self, request: HttpRequest, obj=None):
        groups = {}
        for descriptor in self.form_fields(request, obj):
            groups.setdefault(descriptor.group, []).append(descriptor.name)
        return [(group, {"fields": names}) for group, names in groups.items()]

    def get_readonly_fields(self, request: HttpRequest, obj=None):
        role = get_role(request.user)
        readonly = []
        for descriptor in self.form_fields(request, obj):
            if not descriptor.is_visible(Page.FORM, role):
                readonly.append(descriptor.name)
            elif obj is not None and descriptor.create_only:
                readonly.append(descriptor.name)
        return readonly

    def get_form(self, request: HttpRequest, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        for descriptor in self.field_descriptors:
            field = form.base_fields.get(descriptor.name)
            if field is None:
                continue
            if descriptor.label:
                field.label = descriptor.label
            if descriptor.help_text:
                field.help_text = descriptor.help_text
        return form
