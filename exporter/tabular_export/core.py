"""Exports to tabular (2D) formats

The ``export_to_FORMAT_response`` functions take a ``filename`` plus
``headers`` and ``rows`` and return a download response. Callers build the
rows however they like; ``flatten_queryset`` covers the common case of a
QuerySet and an explicit list of field lookups, including lookups across
relations such as ``topic__title``.
"""

import csv
import datetime
from functools import wraps
from itertools import chain
from typing import Any, Callable, Iterable, Mapping, Sequence
from urllib.parse import quote

import xlsxwriter
from django.db.models import QuerySet
from django.http import HttpResponse, StreamingHttpResponse
from django.utils.encoding import force_str

ResponseType = HttpResponse | StreamingHttpResponse


def flatten_queryset(
    qs: QuerySet[Any],
    field_names: Iterable[str] | None = None,
    extra_verbose_names: Mapping[str, str] | None = None,
) -> tuple[list[str], Iterable[Sequence[Any]]]:
    """
    Convert a queryset into headers and row tuples for tabular export.

    Args:
        qs: Queryset to flatten. Its ordering is kept.
        field_names: Field lookups to include, in column order. Defaults to
            every concrete field on the model.
        extra_verbose_names: Column labels for lookups which are not plain
            model fields (``{"asked_by__email": "Asked by"}``) or which
            should not use the model's verbose name.

    Returns:
        A 2-tuple of ``(headers, rows)``.
    """

    if field_names is None:
        field_names = [i.attname for i in qs.model._meta.concrete_fields]
    field_names = list(field_names)

    verbose_names = {i.name: i.verbose_name for i in qs.model._meta.fields}
    if extra_verbose_names is not None:
        verbose_names.update(extra_verbose_names)

    headers = [force_str(verbose_names.get(i, i)) for i in field_names]

    return headers, qs.values_list(*field_names)


def convert_value_to_unicode(v: Any) -> str:
    """
    Render a single cell: ``None`` becomes an empty string and dates use
    ``isoformat()``.
    """

    if v is None:
        return ""
    elif hasattr(v, "isoformat"):
        return v.isoformat()
    else:
        return force_str(v)


def set_content_disposition(
    f: Callable[..., ResponseType],
) -> Callable[..., ResponseType]:
    """
    Decorator that marks the response as an attachment named ``filename``.

    The wrapped function must take ``filename`` as its first positional
    argument.
    """

    @wraps(f)
    def inner(filename: str, *args: Any, **kwargs: Any) -> ResponseType:
        response = f(filename, *args, **kwargs)
        # See RFC 5987 for the filename* spec:
        response["Content-Disposition"] = "attachment; filename*=UTF-8''%s" % quote(
            filename
        )
        return response

    return inner


@set_content_disposition
def export_to_excel_response(
    filename: str,
    headers: Iterable[Any],
    rows: Iterable[Sequence[Any]],
) -> HttpResponse:
    """
    Return an XLSX ``HttpResponse`` for the given headers and rows.
    """

    content_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    # XLSX is a zip container, which cannot be produced incrementally, so this
    # is a regular response rather than a streaming one
    resp = HttpResponse(content_type=content_type)

    workbook = xlsxwriter.Workbook(
        resp,
        {
            "constant_memory": True,
            "in_memory": True,
            "default_date_format": "yyyy-mm-dd",
        },
    )

    date_format = workbook.add_format({"num_format": "yyyy-mm-dd"})

    worksheet = workbook.add_worksheet()

    for y, row in enumerate(chain((headers,), rows)):
        for x, col in enumerate(row):
            if isinstance(col, datetime.datetime):
                # xlsxwriter cannot handle timezones:
                worksheet.write_datetime(y, x, col.replace(tzinfo=None), date_format)
            elif isinstance(col, datetime.date):
                worksheet.write_datetime(y, x, col, date_format)
            else:
                worksheet.write(y, x, force_str(col, strings_only=True))

    workbook.close()

    return resp


class Echo(object):
    # See
    # https://docs.djangoproject.com/en/stable/howto/outputting-csv/#streaming-large-csv-files

    def write(self, value: str) -> str:
        return value


@set_content_disposition
def export_to_csv_response(
    filename: str,
    headers: Iterable[Any],
    rows: Iterable[Sequence[Any]],
) -> StreamingHttpResponse:
    """
    Return a streaming CSV response for the given headers and rows.

    Rows are rendered one at a time so large exports are never held in
    memory.
    """
    writer = csv.writer(Echo())

    def row_generator() -> Iterable[Iterable[str]]:
        yield map(convert_value_to_unicode, headers)

        for row in rows:
            yield map(convert_value_to_unicode, row)

    # csv.writer.writerow returns whatever the file-like .write returns,
    # which for Echo is the rendered line
    return StreamingHttpResponse(
        (writer.writerow(row) for row in row_generator()),
        content_type="text/csv; charset=utf-8",
    )
