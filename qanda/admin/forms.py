from django import forms
from django.db.models import Q

from ..models import Question
from ..moderation import visible_askers


class QuestionAdminForm(forms.ModelForm):
    """
    Only enabled users can be picked as the asker. When editing, the current
    asker stays a valid choice even if that account has since been disabled,
    so the rest of the question can still be saved.
    """

    class Meta:
        model = Question
        fields = "__all__"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        asked_by = self.fields.get("asked_by")
        if asked_by is None:
            return

        queryset = visible_askers()
        if self.instance.pk and self.instance.asked_by_id:
            queryset = queryset.model.objects.filter(
                Q(pk__in=queryset.values("pk")) | Q(pk=self.instance.asked_by_id)
            ).order_by("email")
        asked_by.queryset = queryset
