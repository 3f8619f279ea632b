import warnings
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from qanda.logging import QandaLogger
from qanda.utils.logging import get_logging_user_id

from .utils import CreateTestUsers, create_answer, create_question


class QandaLoggerTests(TestCase, CreateTestUsers):
    def setUp(self):
        self.mock_structlog_logger = MagicMock()
        self.logger = QandaLogger(self.mock_structlog_logger)

    def test_info_logs_with_event(self):
        self.logger.info("info msg", event_code="info_event", key2="value2")
        self.mock_structlog_logger.info.assert_called_once()
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(args[0], "info msg")
        self.assertEqual(kwargs["event_code"], "info_event")
        self.assertEqual(kwargs["key2"], "value2")

    def test_debug_logs_with_event(self):
        self.logger.debug("debug msg", event_code="debug_event")
        args, kwargs = self.mock_structlog_logger.debug.call_args
        self.assertEqual(kwargs["event_code"], "debug_event")

    def test_warning_requires_reason_and_reason_code(self):
        with self.assertRaises(TypeError):
            self.logger.warning(
                "warning msg", event_code="warn_event", reason="only_reason"
            )

        self.logger.warning(
            "warning msg",
            event_code="warn_event",
            reason="test reason",
            reason_code="warn_code",
        )
        args, kwargs = self.mock_structlog_logger.warning.call_args
        self.assertEqual(kwargs["reason"], "test reason")
        self.assertEqual(kwargs["reason_code"], "warn_code")

    def test_error_requires_reason_and_reason_code(self):
        with self.assertRaises(TypeError):
            self.logger.error("error msg", event_code="error_event", reason_code="x")

        with self.assertRaises(ValueError):
            self.logger.log(
                "error", "bad", event_code="something", reason="fail", reason_code=None
            )

    def test_missing_event_raises(self):
        with self.assertRaises(ValueError):
            self.logger.info("msg", event_code=None)

    def test_missing_message_raises(self):
        with self.assertRaises(ValueError):
            self.logger.info("", event_code="event")

    def test_user_context(self):
        user = self.create_test_user()
        self.logger.info("msg", event_code="event", user=user)
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["user_id"], str(user.pk))
        self.assertNotIn("user", kwargs)

    def test_question_context_includes_topic(self):
        question = create_question()
        self.logger.info("msg", event_code="event", question=question)
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["question_id"], question.pk)
        self.assertEqual(kwargs["question_slug"], question.slug)
        self.assertEqual(kwargs["topic_slug"], question.topic.slug)

    def test_answer_context_includes_question(self):
        answer = create_answer()
        self.logger.info("msg", event_code="event", answer=answer)
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["answer_id"], answer.pk)
        self.assertEqual(kwargs["question_id"], answer.question.pk)
        self.assertEqual(kwargs["topic_slug"], answer.question.topic.slug)

    def test_explicit_key_overrides_extracted(self):
        question = create_question()
        self.logger.info(
            "msg", event_code="event", question=question, question_id=999
        )
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["question_id"], 999)

    def test_none_values_are_skipped(self):
        self.logger.info("msg", event_code="event", explicit=None)
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertNotIn("explicit", kwargs)

    def test_bind_merges_context_into_logging(self):
        question = create_question()
        bound = self.logger.bind(question=question, request_source="admin")
        self.assertIsInstance(bound, QandaLogger)

        bound.info("msg", event_code="bound_event")
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["question_id"], question.pk)
        self.assertEqual(kwargs["request_source"], "admin")

    def test_register_and_unregister_extractor(self):
        self.logger.register_extractor("thing", lambda o: {"thing_id": o.id})
        self.logger.info("msg", event_code="event", thing=SimpleNamespace(id=42))
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["thing_id"], 42)

        self.logger.unregister_extractor("thing")
        self.assertNotIn("thing", self.logger._extractors)

    def test_register_extractor_warns_on_chained_override(self):
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            self.logger.register_extractor("question", lambda o: {})
            self.assertTrue(
                any(
                    "default extractors may still reference" in str(warn.message)
                    for warn in w
                )
            )

    def test_get_logger_uses_structlog(self):
        with patch("qanda.logging.structlog.get_logger") as mock_get_logger:
            mock_logger_instance = MagicMock()
            mock_get_logger.return_value = mock_logger_instance

            logger = QandaLogger.get_logger("qanda.tests")

            mock_get_logger.assert_called_once_with("structlog.qanda.tests")
            self.assertEqual(logger._logger, mock_logger_instance)


class GetLoggingUserIdTests(TestCase, CreateTestUsers):
    def test_authenticated_user(self):
        user = self.create_test_user()
        self.assertEqual(get_logging_user_id(user), str(user.pk))

    def test_anonymous_user(self):
        self.assertEqual(get_logging_user_id(AnonymousUser()), "anonymous")
        self.assertEqual(get_logging_user_id(None), "anonymous")

    def test_unsaved_user(self):
        user = self.create_test_user()
        user.pk = None
        self.assertEqual(get_logging_user_id(user), "anonymous")
