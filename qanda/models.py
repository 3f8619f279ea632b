from django.conf import settings
from django.contrib.auth.models import User
from django.db import models
from django.urls import reverse


class Role(models.IntegerChoices):
    # Values are ordered so that a higher role includes every lower one
    USER = 1, "User"
    MODERATOR = 2, "Moderator"
    SUPER_ADMIN = 3, "Super admin"


class UserProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    role = models.IntegerField(choices=Role.choices, default=Role.USER)

    def __str__(self):
        return f"{self.user} ({self.get_role_display()})"


class Topic(models.Model):
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=80, unique=True, allow_unicode=True)

    class Meta:
        ordering = ("title",)

    def __str__(self):
        return self.title


class QuestionQuerySet(models.QuerySet):
    def pending(self):
        return self.filter(is_approved=False)

    def approved(self):
        return self.filter(is_approved=True)

    def moderation_order(self):
        """
        Questions from enabled askers first, newest first within each group.

        The primary key is the final tiebreaker so paginated listings are
        reproducible when timestamps collide.
        """
        return self.order_by("-asked_by__is_active", "-created_on", "-pk")


class Question(models.Model):
    objects = QuestionQuerySet.as_manager()

    name = models.CharField(max_length=255)
    slug = models.SlugField(
        max_length=100,
        unique=True,
        help_text="Used in the public URL; cannot be changed once created",
    )
    topic = models.ForeignKey(Topic, on_delete=models.PROTECT, related_name="questions")
    question = models.TextField(help_text="Markdown is supported.")

    asked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="questions",
    )
    votes = models.PositiveIntegerField(default=0, verbose_name="total votes")
    is_approved = models.BooleanField(default=False, db_index=True)

    created_on = models.DateTimeField(auto_now_add=True)
    updated_on = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        blank=True,
        null=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    class Meta:
        indexes = [
            models.Index(
                fields=["is_approved", "created_on"], name="question_approval_idx"
            ),
        ]

    def __str__(self):
        return self.name

    def get_absolute_url(self):
        return reverse("question-detail", kwargs={"slug": self.slug})


class Answer(models.Model):
    answer = models.TextField()
    votes = models.PositiveIntegerField(default=0)

    question = models.ForeignKey(
        Question, on_delete=models.CASCADE, related_name="answers"
    )
    answered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="answers"
    )

    created_on = models.DateTimeField(auto_now_add=True)
    updated_on = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("created_on", "pk")

    def __str__(self):
        return f"Answer #{self.pk}"
