from django.core.exceptions import ValidationError
from django.db.models import ProtectedError
from django.test import TestCase

from qanda.models import Answer, Question, Role, UserProfile

from .utils import CreateTestUsers, create_answer, create_question, create_topic


class QuestionTestCase(TestCase, CreateTestUsers):
    def test_str(self):
        question = create_question(name="How do I vote?")
        self.assertEqual(str(question), "How do I vote?")

    def test_defaults(self):
        question = create_question()
        self.assertFalse(question.is_approved)
        self.assertEqual(question.votes, 0)
        self.assertIsNone(question.updated_by)
        self.assertIsNotNone(question.created_on)
        self.assertIsNotNone(question.updated_on)

    def test_get_absolute_url(self):
        question = create_question(name="Where is it?")
        self.assertEqual(question.get_absolute_url(), "/questions/where-is-it/")

    def test_slug_is_unique(self):
        create_question(name="First", slug="duplicate")
        with self.assertRaises(ValidationError):
            create_question(name="Second", slug="duplicate")

    def test_votes_cannot_be_negative(self):
        with self.assertRaises(ValidationError):
            create_question(votes=-1)

    def test_querysets(self):
        pending = create_question(name="Pending")
        approved = create_question(name="Approved", is_approved=True)

        self.assertQuerySetEqual(Question.objects.pending(), [pending])
        self.assertQuerySetEqual(Question.objects.approved(), [approved])

    def test_deleting_question_deletes_answers(self):
        answer = create_answer()
        answer.question.delete()
        self.assertFalse(Answer.objects.filter(pk=answer.pk).exists())

    def test_topic_with_questions_cannot_be_deleted(self):
        question = create_question()
        with self.assertRaises(ProtectedError):
            question.topic.delete()

    def test_updated_by_is_cleared_when_editor_is_deleted(self):
        editor = self.create_moderator()
        question = create_question(updated_by=editor)

        editor.delete()

        question.refresh_from_db()
        self.assertIsNone(question.updated_by)


class AnswerTestCase(TestCase):
    def test_ordering(self):
        question = create_question()
        first = create_answer(question=question, answer="First")
        second = create_answer(question=question, answer="Second")

        self.assertEqual(list(question.answers.all()), [first, second])

    def test_str(self):
        answer = create_answer()
        self.assertEqual(str(answer), f"Answer #{answer.pk}")


class TopicTestCase(TestCase):
    def test_str(self):
        self.assertEqual(str(create_topic(title="Voting")), "Voting")

    def test_unicode_slug(self):
        topic = create_topic(title="Élections")
        self.assertEqual(topic.slug, "élections")


class UserProfileTestCase(TestCase, CreateTestUsers):
    def test_default_role(self):
        user = self.create_test_user()
        self.assertEqual(user.profile.role, Role.USER)

    def test_str(self):
        user = self.create_moderator()
        profile = UserProfile.objects.get(user=user)
        self.assertEqual(str(profile), "testmoderator (Moderator)")
