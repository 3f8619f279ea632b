"""
Declarative field descriptions for the back-office screens.

Each admin screen is described by an ordered list of ``FieldDescriptor``
objects rather than per-field code. ``qanda.admin.utils.DescriptorAdminMixin``
turns these lists into Django admin configuration (changelist columns,
fieldsets, read-only fields, labels and help text) and the CSV export uses
the same list to pick its columns, so a field hidden from a role on screen
is also absent from that role's exports.
"""

from django.db import models

from .models import Role


class Page(models.TextChoices):
    LIST = "list", "List"
    DETAIL = "detail", "Detail"
    FORM = "form", "Form"


ALL_PAGES = frozenset(Page)


class Widget(models.TextChoices):
    ID = "id", "Identifier"
    TEXT = "text", "Text"
    TEXTAREA = "textarea", "Text area"
    ASSOCIATION = "association", "Association"
    AUTOCOMPLETE = "autocomplete", "Autocomplete"
    INLINE = "inline", "Inline collection"
    VOTES = "votes", "Votes"
    DATETIME = "datetime", "Date and time"


class FieldDescriptor:
    """
    Describes how one model field is presented on the admin pages.

    Args:
        name (str): Model field (or reverse relation) name.
        widget (Widget): Kind of widget used to edit or display the value.
        label (str | None): Label override; ``None`` keeps the model's
            verbose name.
        visible_on (Iterable[Page]): Pages on which the field is shown.
        help_text (str): Help text override shown under form widgets.
        min_role (Role | None): Minimum role required to see the field at
            all, on any page or in exports.
        create_only (bool): The value can be entered when the record is
            created but is read-only afterwards.
        list_column (str | None): Name of the ``ModelAdmin`` display method
            used for the changelist column instead of the raw field.
        export_as (str | None): ORM lookup used for the export column;
            defaults to ``name``.
        group (str): Fieldset the field belongs to on the form pages.
    """

    def __init__(
        self,
        name,
        widget=Widget.TEXT,
        *,
        label=None,
        visible_on=ALL_PAGES,
        help_text="",
        min_role=None,
        create_only=False,
        list_column=None,
        export_as=None,
        group=None,
    ):
        self.name = name
        self.widget = widget
        self.label = label
        self.visible_on = frozenset(visible_on)
        self.help_text = help_text
        self.min_role = min_role
        self.create_only = create_only
        self.list_column = list_column
        self.export_as = export_as or name
        self.group = group

    def __repr__(self):
        return f"<FieldDescriptor {self.name} ({self.widget})>"

    @property
    def is_form_field(self):
        # Identifiers are never edited and collections are edited inline
        return self.widget not in (Widget.ID, Widget.INLINE)

    def is_visible(self, page, role):
        if page not in self.visible_on:
            return False
        if self.min_role is None:
            return True
        return role is not None and role >= self.min_role


def only_on(*pages):
    return frozenset(pages)


def hide_on(*pages):
    return ALL_PAGES - frozenset(pages)


def visible_descriptors(descriptors, page, role):
    return [i for i in descriptors if i.is_visible(page, role)]


BASIC_DATA = "Basic data"
DETAILS = "Details"

QUESTION_FIELDS = (
    FieldDescriptor(
        "name",
        list_column="question_name",
        group=BASIC_DATA,
    ),
    FieldDescriptor(
        "slug",
        visible_on=hide_on(Page.LIST),
        create_only=True,
        group=BASIC_DATA,
    ),
    FieldDescriptor("id", Widget.ID, visible_on=only_on(Page.LIST)),
    FieldDescriptor(
        "topic", Widget.ASSOCIATION, export_as="topic__title", group=BASIC_DATA
    ),
    FieldDescriptor(
        "question",
        Widget.TEXTAREA,
        visible_on=hide_on(Page.LIST),
        help_text="Markdown is supported.",
        group=BASIC_DATA,
    ),
    FieldDescriptor(
        "votes",
        Widget.VOTES,
        label="Total Votes",
        min_role=Role.SUPER_ADMIN,
        list_column="total_votes",
        group=BASIC_DATA,
    ),
    FieldDescriptor(
        "asked_by",
        Widget.AUTOCOMPLETE,
        list_column="asked_by_display",
        export_as="asked_by__email",
        group=DETAILS,
    ),
    FieldDescriptor("answers", Widget.INLINE, visible_on=only_on(Page.FORM)),
    FieldDescriptor(
        "created_on",
        Widget.DATETIME,
        visible_on=hide_on(Page.FORM),
        group=DETAILS,
    ),
    FieldDescriptor(
        "is_approved",
        label="Approved",
        visible_on=hide_on(Page.FORM),
        group=DETAILS,
    ),
    FieldDescriptor(
        "updated_by",
        Widget.ASSOCIATION,
        visible_on=only_on(Page.DETAIL),
        group=DETAILS,
    ),
)

ANSWER_FIELDS = (
    FieldDescriptor("id", Widget.ID, visible_on=only_on(Page.LIST)),
    FieldDescriptor("answer", Widget.TEXTAREA, list_column="truncated_answer"),
    FieldDescriptor("votes", Widget.VOTES, min_role=Role.SUPER_ADMIN),
    FieldDescriptor(
        "question",
        Widget.AUTOCOMPLETE,
        visible_on=hide_on(Page.LIST),
    ),
    FieldDescriptor("answered_by", Widget.AUTOCOMPLETE),
    FieldDescriptor("created_on", Widget.DATETIME, visible_on=hide_on(Page.FORM)),
    FieldDescriptor(
        "updated_on", Widget.DATETIME, visible_on=only_on(Page.DETAIL)
    ),
)
