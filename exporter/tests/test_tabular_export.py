import datetime
from unittest.mock import Mock

from django.http import HttpResponse, StreamingHttpResponse
from django.test import TestCase

from exporter.tabular_export.admin import (
    export_to_csv_action,
    export_to_excel_action,
)
from exporter.tabular_export.core import (
    Echo,
    convert_value_to_unicode,
    export_to_csv_response,
    export_to_excel_response,
    flatten_queryset,
    set_content_disposition,
)
from qanda.models import Question, Topic
from qanda.tests.utils import create_question, create_topic


class CoreTests(TestCase):
    def test_convert_value_to_unicode(self):
        self.assertEqual(convert_value_to_unicode(None), "")
        self.assertEqual(convert_value_to_unicode("abc"), "abc")
        self.assertEqual(convert_value_to_unicode(12), "12")
        dt = datetime.datetime(2020, 1, 1, 12, 0)
        self.assertEqual(convert_value_to_unicode(dt), "2020-01-01T12:00:00")
        d = datetime.date(2020, 1, 1)
        self.assertEqual(convert_value_to_unicode(d), "2020-01-01")

    def test_echo_write(self):
        echo = Echo()
        self.assertEqual(echo.write("abc"), "abc")

    def test_flatten_queryset_defaults(self):
        topic = create_topic(title="Voting")

        headers, rows = flatten_queryset(Topic.objects.all())

        self.assertEqual(headers, ["ID", "title", "slug"])
        self.assertEqual(list(rows), [(topic.pk, "Voting", "voting")])

    def test_flatten_queryset_follows_relations(self):
        question = create_question(name="Where?")

        headers, rows = flatten_queryset(
            Question.objects.all(),
            field_names=["name", "topic__title", "asked_by__email"],
            extra_verbose_names={"topic__title": "Topic", "name": "Question"},
        )

        self.assertEqual(headers, ["Question", "Topic", "asked_by__email"])
        self.assertEqual(
            list(rows),
            [("Where?", question.topic.title, question.asked_by.email)],
        )

    def test_flatten_queryset_keeps_ordering(self):
        create_topic(title="B")
        create_topic(title="A")

        headers, rows = flatten_queryset(
            Topic.objects.order_by("-title"), field_names=["title"]
        )

        self.assertEqual(list(rows), [("B",), ("A",)])

    def test_set_content_disposition(self):
        @set_content_disposition
        def dummy(filename):
            return StreamingHttpResponse()

        resp = dummy("test file.csv")
        self.assertEqual(
            resp["Content-Disposition"], "attachment; filename*=UTF-8''test%20file.csv"
        )

    def test_export_to_csv_response(self):
        headers = ["h1", "h2"]
        rows = [["a", None], ["ü", datetime.date(2022, 1, 1)]]
        resp = export_to_csv_response("test.csv", headers, rows)
        self.assertIsInstance(resp, StreamingHttpResponse)
        self.assertEqual(resp["Content-Type"], "text/csv; charset=utf-8")
        content = b"".join(resp.streaming_content).decode("utf-8")
        self.assertEqual(content, "h1,h2\r\na,\r\nü,2022-01-01\r\n")

    def test_export_to_excel_response(self):
        headers = ["h1", "h2", "h3"]
        rows = [
            [
                "x",
                datetime.date(2022, 1, 1),
                datetime.datetime(2022, 1, 1, 12, 0, tzinfo=datetime.timezone.utc),
            ]
        ]
        resp = export_to_excel_response("file.xlsx", headers, rows)
        self.assertIsInstance(resp, HttpResponse)
        self.assertEqual(
            resp["Content-Type"],
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        self.assertTrue(resp.content.startswith(b"PK"))


class AdminTests(TestCase):
    def setUp(self):
        create_topic(title="First")
        create_topic(title="Second")
        self.queryset = Topic.objects.all()
        self.modeladmin = Mock()
        self.modeladmin.model = Topic
        self.request = Mock()

    def test_export_to_excel_action_default_filename(self):
        response = export_to_excel_action(self.modeladmin, self.request, self.queryset)
        self.assertIsInstance(response, HttpResponse)
        self.assertIn("topics.xlsx", response["Content-Disposition"])

    def test_export_to_csv_action_default_filename(self):
        response = export_to_csv_action(self.modeladmin, self.request, self.queryset)
        self.assertIsInstance(response, StreamingHttpResponse)
        self.assertIn("topics.csv", response["Content-Disposition"])
        content = b"".join(response.streaming_content)
        self.assertIn(b"First", content)
        self.assertIn(b"Second", content)

    def test_export_to_csv_action_with_custom_filename_and_fields(self):
        response = export_to_csv_action(
            self.modeladmin,
            self.request,
            self.queryset,
            filename="custom.csv",
            field_names=["title"],
            extra_verbose_names={"title": "Custom Name"},
        )
        self.assertIn("custom.csv", response["Content-Disposition"])
        content = b"".join(response.streaming_content).decode("utf-8")
        self.assertEqual(content.splitlines()[0], "Custom Name")
