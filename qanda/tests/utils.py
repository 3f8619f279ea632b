from functools import wraps
from secrets import token_hex

from django.contrib.auth.models import User
from django.utils.text import slugify

from qanda.models import Answer, Question, Role, Topic


def ensure_slug(original_function):
    @wraps(original_function)
    def inner(*args, **kwargs):
        title = kwargs.get("title") or kwargs.get("name")
        slug = kwargs.get("slug")
        if title and slug is None:
            kwargs["slug"] = slugify(title, allow_unicode=True)

        return original_function(*args, **kwargs)

    return inner


@ensure_slug
def create_topic(*, title="Test Topic", slug="test-topic", do_save=True, **kwargs):
    topic = Topic(title=title, slug=slug, **kwargs)
    topic.full_clean()
    if do_save:
        topic.save()
    return topic


@ensure_slug
def create_question(
    *,
    topic=None,
    asked_by=None,
    name="Test Question",
    slug="test-question",
    question="What is the answer?",
    is_approved=False,
    do_save=True,
    **kwargs,
):
    if topic is None:
        topic = Topic.objects.filter(slug="test-topic").first() or create_topic()
    if asked_by is None:
        asked_by = CreateTestUsers.create_user(f"asker-{token_hex(4)}")

    obj = Question(
        topic=topic,
        asked_by=asked_by,
        name=name,
        slug=slug,
        question=question,
        is_approved=is_approved,
        **kwargs,
    )
    obj.full_clean()
    if do_save:
        obj.save()
    return obj


def create_answer(
    *, question=None, answered_by=None, answer="Test answer", do_save=True, **kwargs
):
    if question is None:
        question = create_question()
    if answered_by is None:
        answered_by = CreateTestUsers.create_user(f"answerer-{token_hex(4)}")

    obj = Answer(question=question, answered_by=answered_by, answer=answer, **kwargs)
    obj.full_clean()
    if do_save:
        obj.save()
    return obj


class CreateTestUsers(object):
    def login_user(self, username="tester", **kwargs):
        """
        Create a user and log the user in
        """
        if not hasattr(self, "user") or self.user is None:
            self.user = self.create_test_user(username, **kwargs)

        self.client.login(username=self.user.username, password=self.user._password)

    def logout_user(self):
        self.client.logout()
        self.user = None

    @classmethod
    def create_user(cls, username, is_active=True, role=None, **kwargs):
        if "email" not in kwargs:
            kwargs["email"] = f"{username}@example.com"

        user = User.objects.create_user(username=username, **kwargs)
        fake_pw = token_hex(24)
        user.is_active = is_active
        user.set_password(fake_pw)
        user.save()

        if role is not None:
            user.profile.role = role
            user.profile.save()

        user._password = fake_pw

        return user

    @classmethod
    def create_test_user(cls, username="testuser", **kwargs):
        """
        Creates an activated test User account
        """
        kwargs.setdefault("is_active", True)
        return cls.create_user(username, **kwargs)

    @classmethod
    def create_inactive_user(cls, username="testinactiveuser", **kwargs):
        """
        Creates an inactive test User account
        """
        kwargs.setdefault("is_active", False)
        return cls.create_user(username, **kwargs)

    @classmethod
    def create_moderator(cls, username="testmoderator", **kwargs):
        """
        Creates a staff account holding the moderator role
        """
        kwargs.setdefault("is_staff", True)
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("role", Role.MODERATOR)
        return cls.create_user(username, **kwargs)

    @classmethod
    def create_super_admin(cls, username="testsuperadmin", **kwargs):
        """
        Creates a staff account holding the super admin role, without being
        a Django superuser
        """
        kwargs.setdefault("is_staff", True)
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("role", Role.SUPER_ADMIN)
        return cls.create_user(username, **kwargs)

    @classmethod
    def create_super_user(cls, username="testsuperuser", **kwargs):
        """
        Creates a super user User account
        """
        kwargs.setdefault("is_staff", True)
        kwargs.setdefault("is_superuser", True)
        kwargs.setdefault("is_active", True)
        return cls.create_user(username, **kwargs)


class StreamingTestMixin(object):
    def get_streaming_content(self, response):
        self.assertTrue(response.streaming)
        return b"".join(response.streaming_content)
