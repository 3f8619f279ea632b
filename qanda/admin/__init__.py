from typing import Any

from django.contrib import admin, messages
from django.contrib.admin.options import IncorrectLookupParameters
from django.contrib.admin.utils import unquote
from django.contrib.auth.admin import UserAdmin
from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied, ValidationError
from django.db.models import Count, QuerySet
from django.http import HttpRequest, HttpResponse, HttpResponseRedirect
from django.template.defaultfilters import truncatechars
from django.urls import path, reverse
from django.utils.decorators import method_decorator
from django.utils.html import format_html
from django.views.decorators.http import require_POST

from exporter.tabular_export.admin import export_to_csv_action, export_to_excel_action
from exporter.tabular_export.core import export_to_csv_response

from ..exceptions import ModerationError, NotFoundError
from ..fields import ANSWER_FIELDS, QUESTION_FIELDS
from ..models import Answer, Question, Topic, UserProfile
from ..moderation import (
    Operation,
    approve_question,
    can_approve,
    can_delete,
    delete_question,
    export_questions,
    get_role,
    is_permitted,
    moderation_ordering,
    save_new_question,
    update_question,
    visible_askers,
)
from .actions import approve_action, export_csv_action, export_excel_action
from .filters import ApprovalStatusFilter, VotesListFilter
from .forms import QuestionAdminForm
from .utils import DescriptorAdminMixin


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    fields = ("role",)


class QandaUserAdmin(UserAdmin):
    """
    Customize the Django admin for `User` objects.

    Shows each account's moderation role, whether it is enabled and how many
    questions it has asked, and provides CSV and Excel export actions.
    """

    inlines = (UserProfileInline,)

    list_display = (
        "username",
        "email",
        "enabled",
        "role",
        "question_count",
        "date_joined",
    )
    list_filter = ("is_active", "is_staff", "profile__role")

    def get_queryset(self, request: HttpRequest) -> QuerySet[User]:
        return (
            super()
            .get_queryset(request)
            .select_related("profile")
            .annotate(question_count=Count("questions", distinct=True))
        )

    def get_inline_instances(self, request: HttpRequest, obj: User | None = None):
        # The profile is created by a signal when the user is first saved
        if obj is None:
            return []
        return super().get_inline_instances(request, obj)

    @admin.display(description="Enabled", boolean=True, ordering="is_active")
    def enabled(self, obj: User) -> bool:
        return obj.is_active

    @admin.display(description="Role", ordering="profile__role")
    def role(self, obj: User) -> str:
        role = get_role(obj)
        return role.label if role is not None else "-"

    @admin.display(description="Questions", ordering="question_count")
    def question_count(self, obj: User) -> int:
        return obj.question_count

    def has_view_permission(self, request: HttpRequest, obj: User | None = None):
        """
        Moderators may search users through the asker and answerer
        autocomplete widgets without being given access to user accounts.
        """
        if super().has_view_permission(request, obj):
            return True
        return (
            obj is None
            and request.path == reverse("admin:autocomplete")
            and is_permitted(request.user, Operation.EDIT)
        )

    def get_search_results(
        self,
        request: HttpRequest,
        queryset: QuerySet[User],
        search_term: str,
    ) -> tuple[QuerySet[User], bool]:
        """
        Restrict asker autocomplete results to enabled accounts.

        Args:
            request (HttpRequest): Current admin request; autocomplete
                requests name the source model and field in the query string.
            queryset (QuerySet[User]): Base queryset.
            search_term (str): Search text typed by the user.

        Returns:
            tuple[QuerySet[User], bool]: Filtered queryset and whether it may
            contain duplicates.
        """
        queryset, may_have_duplicates = super().get_search_results(
            request, queryset, search_term
        )
        if (
            request.GET.get("model_name") == Question._meta.model_name
            and request.GET.get("field_name") == "asked_by"
        ):
            queryset = queryset.filter(pk__in=visible_askers().values("pk"))
        return queryset, may_have_duplicates

    EXPORT_FIELDS = (
        "username",
        "email",
        "is_active",
        "is_staff",
        "is_superuser",
        "date_joined",
        "last_login",
        "profile__role",
    )

    EXTRA_VERBOSE_NAMES = {
        "is_active": "enabled",
        "profile__role": "role",
    }

    @admin.action(description="Export selected users to CSV")
    def export_users_as_csv(
        self,
        request: HttpRequest,
        queryset: QuerySet[User],
    ) -> HttpResponse:
        return export_to_csv_action(
            self,
            request,
            queryset,
            field_names=self.EXPORT_FIELDS,
            extra_verbose_names=self.EXTRA_VERBOSE_NAMES,
        )

    @admin.action(description="Export selected users to Excel")
    def export_users_as_excel(
        self,
        request: HttpRequest,
        queryset: QuerySet[User],
    ) -> HttpResponse:
        return export_to_excel_action(
            self,
            request,
            queryset,
            field_names=self.EXPORT_FIELDS,
            extra_verbose_names=self.EXTRA_VERBOSE_NAMES,
        )

    actions = ("export_users_as_csv", "export_users_as_excel")


admin.site.unregister(User)
admin.site.register(User, QandaUserAdmin)


@admin.register(Topic)
class TopicAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "slug")
    list_display_links = ("id", "title")
    prepopulated_fields = {"slug": ("title",)}
    search_fields = ["title"]


class ModerationPermissionMixin:
    """
    Answer Django admin permission checks from the moderation access matrix
    instead of per-model Django permissions.
    """

    view_operation = Operation.VIEW_DETAIL
    change_operation = Operation.EDIT
    add_operation = Operation.EDIT
    delete_operation = Operation.EDIT

    def has_module_permission(self, request: HttpRequest) -> bool:
        return is_permitted(request.user, Operation.VIEW_LIST)

    def has_view_permission(self, request: HttpRequest, obj: Any = None) -> bool:
        return is_permitted(request.user, self.view_operation)

    def has_change_permission(self, request: HttpRequest, obj: Any = None) -> bool:
        return is_permitted(request.user, self.change_operation)

    def has_add_permission(self, request: HttpRequest, *args: Any) -> bool:
        return is_permitted(request.user, self.add_operation)

    def has_delete_permission(self, request: HttpRequest, obj: Any = None) -> bool:
        return is_permitted(request.user, self.delete_operation)


class AnswerInline(ModerationPermissionMixin, admin.TabularInline):
    model = Answer
    extra = 0
    autocomplete_fields = ["answered_by"]

    def get_fields(self, request: HttpRequest, obj: Any = None):
        fields = ["answer", "answered_by"]
        if is_permitted(request.user, Operation.VIEW_VOTES):
            fields.append("votes")
        return fields


@admin.register(Question)
class QuestionAdmin(ModerationPermissionMixin, DescriptorAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for `Question` objects.

    Every change made here goes through `qanda.moderation`, which enforces
    the role matrix and the approval rules; the hooks below only decide what
    to show.
    """

    form = QuestionAdminForm
    field_descriptors = QUESTION_FIELDS
    inlines = [AnswerInline]

    add_operation = Operation.CREATE
    delete_operation = Operation.DELETE

    autocomplete_fields = ("asked_by",)
    search_fields = ("name",)
    date_hierarchy = "created_on"
    actions = (approve_action, export_csv_action, export_excel_action)

    def get_queryset(self, request: HttpRequest) -> QuerySet[Question]:
        return (
            super()
            .get_queryset(request)
            .select_related("asked_by", "topic")
            .annotate(asker_question_count=Count("asked_by__questions", distinct=True))
        )

    def get_ordering(self, request: HttpRequest):
        return moderation_ordering()

    def get_list_filter(self, request: HttpRequest):
        list_filter = ["topic", "created_on", ApprovalStatusFilter]
        if is_permitted(request.user, Operation.VIEW_VOTES):
            list_filter.append(VotesListFilter)
        return list_filter

    def get_list_display(self, request: HttpRequest):
        return super().get_list_display(request) + ["view_on_site_link"]

    @admin.display(description="View on site")
    def view_on_site_link(self, obj: Question) -> str:
        return format_html('<a href="{}">View on site</a>', obj.get_absolute_url())

    @admin.display(description="Name")
    def question_name(self, obj: Question) -> str:
        return obj.name

    @admin.display(description="Total Votes", ordering="votes")
    def total_votes(self, obj: Question) -> int:
        return obj.votes

    @admin.display(description="Asked by", ordering="asked_by__email")
    def asked_by_display(self, obj: Question) -> str:
        user = obj.asked_by
        count = getattr(obj, "asker_question_count", None)
        if count is None:
            count = user.questions.count()
        return f"{user.email} ({count})"

    def has_view_permission(self, request: HttpRequest, obj: Any = None) -> bool:
        operation = Operation.VIEW_LIST if obj is None else Operation.VIEW_DETAIL
        return is_permitted(request.user, operation)

    def has_delete_permission(self, request: HttpRequest, obj: Any = None) -> bool:
        if obj is not None:
            return can_delete(request.user, obj)
        return is_permitted(request.user, Operation.DELETE)

    def has_approve_permission(self, request: HttpRequest, obj: Any = None) -> bool:
        if obj is not None:
            return can_approve(request.user, obj)
        return is_permitted(request.user, Operation.APPROVE)

    def has_export_permission(self, request: HttpRequest) -> bool:
        return is_permitted(request.user, Operation.EXPORT)

    def get_actions(self, request: HttpRequest):
        actions = super().get_actions(request)
        if not is_permitted(request.user, Operation.BATCH_DELETE):
            actions.pop("delete_selected", None)
        return actions

    def save_model(
        self,
        request: HttpRequest,
        obj: Question,
        form: Any,
        change: bool,
    ) -> None:
        if change:
            changes = {
                name: form.cleaned_data[name]
                for name in form.changed_data
                if name in form.cleaned_data
            }
            update_question(obj, request.user, changes)
        else:
            save_new_question(obj, request.user)

    def delete_model(self, request: HttpRequest, obj: Question) -> None:
        delete_question(obj, request.user)

    def delete_queryset(
        self, request: HttpRequest, queryset: QuerySet[Question]
    ) -> None:
        raise PermissionDenied("Batch deletion of questions is disabled")

    def delete_view(
        self,
        request: HttpRequest,
        object_id: str,
        extra_context: dict | None = None,
    ) -> HttpResponse:
        """
        Send the user back to the question with an explanation, rather than
        a bare 403, when they try to delete an approved question.
        """
        obj = self.get_object(request, unquote(object_id))
        if obj is not None and obj.is_approved:
            self.message_user(
                request, "Deleting approved questions is forbidden.", messages.ERROR
            )
            return HttpResponseRedirect(self._change_url(obj))
        try:
            return super().delete_view(request, object_id, extra_context)
        except ModerationError as exc:
            return self._moderation_error_redirect(request, object_id, exc)

    def changeform_view(
        self,
        request: HttpRequest,
        object_id: str | None = None,
        form_url: str = "",
        extra_context: dict | None = None,
    ) -> HttpResponse:
        # The admin wraps the save in a transaction, so nothing from the
        # failed request (inlines included) is kept
        try:
            return super().changeform_view(request, object_id, form_url, extra_context)
        except (ModerationError, ValidationError) as exc:
            return self._moderation_error_redirect(request, object_id, exc)

    def _moderation_error_redirect(
        self,
        request: HttpRequest,
        object_id: str | None,
        exc: ModerationError | ValidationError,
    ) -> HttpResponse:
        if isinstance(exc, NotFoundError) and object_id is not None:
            return self._get_obj_does_not_exist_redirect(request, self.opts, object_id)

        if isinstance(exc, ValidationError):
            message = " ".join(exc.messages)
        else:
            message = str(exc)
        self.message_user(request, message, messages.ERROR)

        if object_id is not None and self.get_object(request, unquote(object_id)):
            return HttpResponseRedirect(
                reverse(
                    self._url_name("change"),
                    args=[unquote(object_id)],
                    current_app=self.admin_site.name,
                )
            )
        return HttpResponseRedirect(
            reverse(self._url_name("changelist"), current_app=self.admin_site.name)
        )

    def change_view(
        self,
        request: HttpRequest,
        object_id: str,
        form_url: str = "",
        extra_context: dict | None = None,
    ) -> HttpResponse:
        extra_context = extra_context or {}
        obj = self.get_object(request, unquote(object_id))
        if obj is not None and self.has_approve_permission(request, obj):
            extra_context["approve_url"] = reverse(
                self._url_name("approve"),
                args=[obj.pk],
                current_app=self.admin_site.name,
            )
        return super().change_view(request, object_id, form_url, extra_context)

    def changelist_view(
        self, request: HttpRequest, extra_context: dict | None = None
    ) -> HttpResponse:
        extra_context = extra_context or {}
        extra_context["has_export_permission"] = self.has_export_permission(request)
        return super().changelist_view(request, extra_context)

    def get_urls(self):
        """
        Add the approve and changelist export URLs.

        Returns:
            list: Custom question URLs followed by the default admin URLs.
        """
        urls = super().get_urls()

        custom_urls = [
            path(
                "export/",
                self.admin_site.admin_view(self.export_view),
                name=self._url_name("export", namespaced=False),
            ),
            path(
                "<path:object_id>/approve/",
                self.admin_site.admin_view(self.approve_view),
                name=self._url_name("approve", namespaced=False),
            ),
        ]

        return custom_urls + urls

    def _url_name(self, suffix: str, namespaced: bool = True) -> str:
        name = f"{self.opts.app_label}_{self.opts.model_name}_{suffix}"
        if namespaced:
            return f"{self.admin_site.name}:{name}"
        return name

    def _change_url(self, obj: Question) -> str:
        return reverse(
            self._url_name("change"), args=[obj.pk], current_app=self.admin_site.name
        )

    @method_decorator(require_POST)
    def approve_view(self, request: HttpRequest, object_id: str) -> HttpResponse:
        """
        Approve a single question from its change page.

        Args:
            request (HttpRequest): Current admin request; must be a POST.
            object_id (str): Primary key of the question.

        Returns:
            HttpResponse: Redirect back to the question's change page, or to
            the changelist if the question no longer exists.
        """
        try:
            question = approve_question(unquote(object_id), request.user)
        except NotFoundError:
            return self._get_obj_does_not_exist_redirect(request, self.opts, object_id)
        except ModerationError as exc:
            self.message_user(request, str(exc), messages.ERROR)
            return HttpResponseRedirect(
                reverse(self._url_name("changelist"), current_app=self.admin_site.name)
            )

        self.message_user(
            request, f'The question "{question}" was approved.', messages.SUCCESS
        )
        return HttpResponseRedirect(self._change_url(question))

    def export_view(self, request: HttpRequest) -> HttpResponse:
        """
        Export the changelist as CSV, honoring its current filters, search
        and ordering.

        Args:
            request (HttpRequest): Current admin request carrying the
                changelist query string.

        Returns:
            HttpResponse: Streaming CSV download.
        """
        if not self.has_export_permission(request):
            raise PermissionDenied

        try:
            changelist = self.get_changelist_instance(request)
        except IncorrectLookupParameters:
            self.message_user(
                request, "The export filters were not valid.", messages.ERROR
            )
            return HttpResponseRedirect(
                reverse(self._url_name("changelist"), current_app=self.admin_site.name)
            )

        headers, rows = export_questions(changelist.get_queryset(request), request.user)
        return export_to_csv_response("questions.csv", headers, rows)


@admin.register(Answer)
class AnswerAdmin(ModerationPermissionMixin, DescriptorAdminMixin, admin.ModelAdmin):
    field_descriptors = ANSWER_FIELDS
    autocomplete_fields = ("question", "answered_by")
    search_fields = ("answer",)
    list_filter = ("created_on",)

    def get_queryset(self, request: HttpRequest) -> QuerySet[Answer]:
        return super().get_queryset(request).select_related("question", "answered_by")

    @admin.display(description="Answer")
    def truncated_answer(self, obj: Answer) -> str:
        return truncatechars(obj.answer, 100)
