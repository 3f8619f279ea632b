"""
Generic Django admin actions which export the selected records::

    actions = (export_to_excel_action, export_to_csv_action)

The filename defaults to the model's ``verbose_name_plural``. ``field_names``
and ``extra_verbose_names`` are passed straight through to
:func:`flatten_queryset`.
"""

from functools import wraps

from django.utils.encoding import force_str
from django.utils.translation import gettext_lazy as _

from .core import export_to_csv_response, export_to_excel_response, flatten_queryset


def ensure_filename(suffix):
    """
    Decorator which fills in ``filename`` from the ``ModelAdmin``'s model
    unless the caller provided one.
    """

    def outer(f):
        @wraps(f)
        def inner(modeladmin, request, queryset, filename=None, *args, **kwargs):
            if filename is None:
                filename = "%s.%s" % (
                    force_str(modeladmin.model._meta.verbose_name_plural),
                    suffix,
                )
            return f(modeladmin, request, queryset, *args, filename=filename, **kwargs)

        return inner

    return outer


@ensure_filename("xlsx")
def export_to_excel_action(
    modeladmin,
    request,
    queryset,
    filename=None,
    field_names=None,
    extra_verbose_names=None,
):
    """Django admin action which exports selected records as an Excel XLSX download"""
    headers, rows = flatten_queryset(
        queryset, field_names=field_names, extra_verbose_names=extra_verbose_names
    )
    return export_to_excel_response(filename, headers, rows)


export_to_excel_action.short_description = _("Export to Excel")


@ensure_filename("csv")
def export_to_csv_action(
    modeladmin,
    request,
    queryset,
    filename=None,
    field_names=None,
    extra_verbose_names=None,
):
    """Django admin action which exports the selected records as a CSV download"""
    headers, rows = flatten_queryset(
        queryset, field_names=field_names, extra_verbose_names=extra_verbose_names
    )
    return export_to_csv_response(filename, headers, rows)


export_to_csv_action.short_description = _("Export to CSV")
