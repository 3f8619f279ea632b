from django.views.generic import DetailView

from .models import Question
from .moderation import Operation, is_permitted


class QuestionDetailView(DetailView):
    """
    Public page for a single question.

    Pending questions are only visible to users who may moderate them;
    everyone else gets a 404 until the question is approved.
    """

    template_name = "qanda/question_detail.html"
    context_object_name = "question"

    def get_queryset(self):
        qs = Question.objects.select_related("topic")
        if not is_permitted(self.request.user, Operation.VIEW_DETAIL):
            qs = qs.approved()
        return qs

    def get_context_data(self, **kwargs):
        ctx = super().get_context_data(**kwargs)
        ctx["answers"] = self.object.answers.all()
        return ctx
