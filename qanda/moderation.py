"""
Question moderation workflow.

Questions start out pending and move to approved through
``approve_question``; nothing moves them back. Every change to a question
goes through the functions in this module, which check the access-control
matrix before touching the database:

==============  ==================================================
Operation       Minimum role
==============  ==================================================
view list       moderator
view detail     moderator
edit            moderator
create          super admin
delete          super admin, and only while the question is pending
batch delete    nobody
approve         moderator, and only while the question is pending
view votes      super admin
export          moderator (vote columns need "view votes")
==============  ==================================================
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import (
    FieldDoesNotExist,
    ObjectDoesNotExist,
    PermissionDenied,
    ValidationError,
)
from django.db import models, transaction
from django.utils.text import capfirst

from exporter.tabular_export.core import flatten_queryset

from .exceptions import (
    ForbiddenOperationError,
    InvariantViolation,
    NotFoundError,
    TypeMismatchError,
)
from .fields import QUESTION_FIELDS, Page, visible_descriptors
from .logging import QandaLogger
from .models import Question, Role

logger = logging.getLogger(__name__)
structured_logger = QandaLogger.get_logger(__name__)


class Operation(models.TextChoices):
    VIEW_LIST = "view_list", "View list"
    VIEW_DETAIL = "view_detail", "View detail"
    EDIT = "edit", "Edit"
    CREATE = "create", "Create"
    DELETE = "delete", "Delete"
    BATCH_DELETE = "batch_delete", "Batch delete"
    APPROVE = "approve", "Approve"
    VIEW_VOTES = "view_votes", "View votes"
    EXPORT = "export", "Export"


# ``None`` means the operation is disabled for every role
ACCESS_MATRIX = {
    Operation.VIEW_LIST: Role.MODERATOR,
    Operation.VIEW_DETAIL: Role.MODERATOR,
    Operation.EDIT: Role.MODERATOR,
    Operation.CREATE: Role.SUPER_ADMIN,
    Operation.DELETE: Role.SUPER_ADMIN,
    Operation.BATCH_DELETE: None,
    Operation.APPROVE: Role.MODERATOR,
    Operation.VIEW_VOTES: Role.SUPER_ADMIN,
    Operation.EXPORT: Role.MODERATOR,
}

# Fields which only change through a dedicated transition, or never
PROTECTED_FIELDS = {
    "slug": "The slug cannot be changed once a question has been created",
    "is_approved": "Questions can only be approved through the approve action",
}

# Always set by the workflow itself
WORKFLOW_FIELDS = {"updated_by"}


def get_role(user):
    """
    Return the moderation ``Role`` of a user, or ``None`` for anonymous or
    disabled accounts.

    Django superusers are always super admins; everyone else takes the role
    stored on their profile.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if not user.is_active:
        return None
    if user.is_superuser:
        return Role.SUPER_ADMIN
    try:
        return Role(user.profile.role)
    except ObjectDoesNotExist:
        return Role.USER


def has_role(user, role):
    user_role = get_role(user)
    return user_role is not None and user_role >= role


def is_permitted(user, operation):
    required = ACCESS_MATRIX[operation]
    if required is None:
        return False
    return has_role(user, required)


def check_permission(user, operation):
    """
    Raise ``PermissionDenied`` unless ``user`` may perform ``operation``.
    """
    if not is_permitted(user, operation):
        structured_logger.warning(
            "Moderation operation refused.",
            event_code="moderation_permission_denied",
            reason=f"User lacks the role required to {Operation(operation).label}",
            reason_code="insufficient_role",
            user=user,
            operation=str(operation),
        )
        raise PermissionDenied(
            f"You do not have permission to {Operation(operation).label.lower()}"
        )


def can_approve(user, question):
    return not question.is_approved and is_permitted(user, Operation.APPROVE)


def can_delete(user, question):
    return not question.is_approved and is_permitted(user, Operation.DELETE)


def _require_acting_user(acting_user):
    if not isinstance(acting_user, get_user_model()) or not (
        acting_user.is_authenticated
    ):
        raise InvariantViolation("acting user missing")


def _load_question(question_or_pk):
    if isinstance(question_or_pk, models.Model):
        if not isinstance(question_or_pk, Question):
            raise TypeMismatchError(
                f"Expected a Question, got {type(question_or_pk).__name__}",
                details={"object": question_or_pk},
            )
        pk = question_or_pk.pk
    else:
        pk = question_or_pk

    if pk is None:
        raise NotFoundError("Question has not been saved")

    try:
        return Question.objects.get(pk=pk)
    except (Question.DoesNotExist, ValueError, ValidationError) as exc:
        raise NotFoundError(
            f"Question {pk} does not exist", details={"pk": pk}
        ) from exc


def approve_question(question_or_pk, acting_user):
    """
    Move a pending question to the approved state.

    Approving a question which is already approved is a no-op: the question
    is returned unchanged and no error is raised.

    Args:
        question_or_pk (Question | Any): The question or its primary key.
        acting_user (User): Moderator performing the approval.

    Returns:
        Question: The approved question, freshly loaded from the database.

    Raises:
        PermissionDenied: The acting user may not approve questions.
        NotFoundError: The question does not exist (any more).
        TypeMismatchError: The object passed in is not a Question.
    """
    check_permission(acting_user, Operation.APPROVE)

    with transaction.atomic():
        question = _load_question(question_or_pk)

        if question.is_approved:
            structured_logger.info(
                "Question was already approved.",
                event_code="question_approve_noop",
                question=question,
                user=acting_user,
            )
            return question

        question.is_approved = True
        question.updated_by = acting_user
        question.save(update_fields=["is_approved", "updated_by", "updated_on"])

    logger.info("Question %s approved by %s", question.pk, acting_user)
    structured_logger.info(
        "Question approved.",
        event_code="question_approved",
        question=question,
        user=acting_user,
    )
    return question


def delete_question(question, acting_user):
    """
    Delete a pending question along with its answers.

    Raises:
        PermissionDenied: The acting user may not delete questions.
        NotFoundError: The question does not exist (any more).
        TypeMismatchError: The object passed in is not a Question.
        ForbiddenOperationError: The question has been approved.
    """
    check_permission(acting_user, Operation.DELETE)

    with transaction.atomic():
        current = _load_question(question)

        if current.is_approved:
            structured_logger.warning(
                "Refused to delete an approved question.",
                event_code="question_delete_refused",
                reason="Approved questions cannot be deleted",
                reason_code="question_approved",
                question=current,
                user=acting_user,
            )
            raise ForbiddenOperationError(
                "Deleting approved questions is forbidden",
                details={"pk": current.pk},
            )

        pk = current.pk
        answer_count = current.answers.count()
        result = current.delete()

    structured_logger.info(
        "Question deleted.",
        event_code="question_deleted",
        question_id=pk,
        question_slug=current.slug,
        answer_count=answer_count,
        user=acting_user,
    )
    return result


def update_question(question, acting_user, changes=None):
    """
    Apply ``changes`` to a question and record who made them.

    ``updated_by`` is always set to the acting user and ``updated_on`` is
    refreshed, even when ``changes`` is empty. The slug and the approval flag
    cannot be changed here.

    Args:
        question (Question): The question to update.
        acting_user (User): User making the change.
        changes (dict | None): Mapping of field name to new value.

    Returns:
        Question: The saved question.

    Raises:
        InvariantViolation: No authenticated acting user was supplied.
        PermissionDenied: The acting user may not edit questions.
        TypeMismatchError: ``question`` is not a Question or a change names
            a field Question does not have.
        NotFoundError: The question has never been saved or has since been
            deleted.
        ForbiddenOperationError: A protected field would change, or a change
            names the primary key, a timestamp or the editor.
        ValidationError: The new values do not validate.
    """
    _require_acting_user(acting_user)
    check_permission(acting_user, Operation.EDIT)

    if not isinstance(question, Question):
        raise TypeMismatchError(
            f"Expected a Question, got {type(question).__name__}",
            details={"object": question},
        )
    if question.pk is None:
        raise NotFoundError("Question has not been saved")

    changes = changes or {}

    for name, value in changes.items():
        try:
            field = Question._meta.get_field(name)
        except FieldDoesNotExist as exc:
            raise TypeMismatchError(
                f"Question has no field named {name!r}", details={"field": name}
            ) from exc
        if not field.concrete:
            raise TypeMismatchError(
                f"{name!r} cannot be changed on the question itself",
                details={"field": name},
            )
        if field.primary_key or not field.editable or name in WORKFLOW_FIELDS:
            raise ForbiddenOperationError(
                f"{name!r} is maintained by the moderation workflow",
                details={"field": name},
            )
        if name in PROTECTED_FIELDS and getattr(question, name) != value:
            raise ForbiddenOperationError(
                PROTECTED_FIELDS[name], details={"field": name}
            )

    with transaction.atomic():
        if not Question.objects.select_for_update().filter(pk=question.pk).exists():
            raise NotFoundError(
                f"Question {question.pk} does not exist", details={"pk": question.pk}
            )

        previous_asker_id = question.asked_by_id
        original = {name: getattr(question, name) for name in changes}
        for name, value in changes.items():
            setattr(question, name, value)

        unchanged = [
            field.name for field in Question._meta.fields if field.name not in changes
        ]
        try:
            if question.asked_by_id != previous_asker_id:
                _check_asker(question)
            question.full_clean(exclude=unchanged)
        except ValidationError:
            for name, value in original.items():
                setattr(question, name, value)
            raise

        question.updated_by = acting_user
        question.save(force_update=True)

    structured_logger.info(
        "Question updated.",
        event_code="question_updated",
        question=question,
        user=acting_user,
        changed_fields=sorted(changes),
    )
    return question


def create_question(acting_user, **fields):
    """
    Create a new, pending question.

    Raises:
        InvariantViolation: No authenticated acting user was supplied.
        PermissionDenied: The acting user may not create questions.
        ForbiddenOperationError: The caller tried to create it pre-approved.
        ValidationError: The values do not validate, including an asker who
            has been disabled.
    """
    _require_acting_user(acting_user)
    check_permission(acting_user, Operation.CREATE)

    if fields.pop("is_approved", False):
        raise ForbiddenOperationError(PROTECTED_FIELDS["is_approved"])

    return _insert_question(Question(**fields), acting_user)


def save_new_question(question, acting_user):
    """
    Persist an unsaved ``Question`` built elsewhere (e.g. by an admin form).
    """
    _require_acting_user(acting_user)
    check_permission(acting_user, Operation.CREATE)
    return _insert_question(question, acting_user)


def _check_asker(question):
    if question.asked_by_id is None:
        return
    if not visible_askers().filter(pk=question.asked_by_id).exists():
        raise ValidationError(
            {"asked_by": "Disabled users cannot be assigned as the asker"}
        )


def _insert_question(question, acting_user):
    question.is_approved = False
    _check_asker(question)
    question.full_clean()
    question.save()

    structured_logger.info(
        "Question created.",
        event_code="question_created",
        question=question,
        user=acting_user,
    )
    return question


def visible_askers():
    """
    Users who may be assigned as the asker of a question.
    """
    return get_user_model().objects.filter(is_active=True).order_by("email")


def moderation_ordering():
    return ("-asked_by__is_active", "-created_on", "-pk")


def export_fields(user):
    """
    Field descriptors of the list page which ``user`` is allowed to see.
    """
    return visible_descriptors(QUESTION_FIELDS, Page.LIST, get_role(user))


def export_questions(queryset, user):
    """
    Flatten a question queryset into ``(headers, rows)`` for tabular export.

    The columns are the list page columns visible to ``user``, so vote totals
    only appear for users who may view them. Row order follows the queryset.

    Raises:
        PermissionDenied: The user may not export questions.
    """
    check_permission(user, Operation.EXPORT)

    descriptors = export_fields(user)
    field_names = [i.export_as for i in descriptors]
    verbose_names = {
        i.export_as: i.label or capfirst(Question._meta.get_field(i.name).verbose_name)
        for i in descriptors
    }

    structured_logger.info(
        "Questions exported.",
        event_code="questions_exported",
        user=user,
        columns=field_names,
    )
    return flatten_queryset(
        queryset, field_names=field_names, extra_verbose_names=verbose_names
    )
