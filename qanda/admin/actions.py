from logging import getLogger

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest, HttpResponse

from exporter.tabular_export.core import (
    export_to_csv_response,
    export_to_excel_response,
)

from ..exceptions import ModerationError
from ..models import Question
from ..moderation import approve_question, export_questions

logger = getLogger(__name__)


@admin.action(permissions=["approve"], description="Approve selected questions")
def approve_action(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[Question],
) -> None:
    """
    Approve every pending question in the selection.

    Questions which are already approved are skipped. A question removed by
    someone else since the changelist was rendered is reported and the rest
    of the selection is still processed.

    Args:
        modeladmin (admin.ModelAdmin): Admin class that owns this action.
        request (HttpRequest): Current request.
        queryset (QuerySet[Question]): Selected questions.

    Returns:
        None
    """
    count = 0
    for question in queryset.filter(is_approved=False):
        try:
            approve_question(question, request.user)
        except ModerationError as exc:
            logger.warning("Could not approve question %s: %s", question.pk, exc)
            messages.error(request, f"{question}: {exc}", fail_silently=True)
        else:
            count += 1

    messages.info(request, f"Approved {count} questions", fail_silently=True)


@admin.action(permissions=["export"], description="Export selected to CSV")
def export_csv_action(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[Question],
) -> HttpResponse:
    """
    Export the selected questions as CSV, with the columns the current user
    is allowed to see.
    """
    headers, rows = export_questions(queryset, request.user)
    return export_to_csv_response("questions.csv", headers, rows)


@admin.action(permissions=["export"], description="Export selected to Excel")
def export_excel_action(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[Question],
) -> HttpResponse:
    headers, rows = export_questions(queryset, request.user)
    return export_to_excel_response("questions.xlsx", headers, rows)
