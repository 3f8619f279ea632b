from django.apps.config import AppConfig
from django.contrib.admin.apps import AdminConfig


class QandaAppConfig(AppConfig):
    name = "qanda"
    verbose_name = "Questions & Answers"

    def ready(self):
        from .signals import handlers  # NOQA


class QandaAdminConfig(AdminConfig):
    default_site = "qanda.admin_site.QandaAdminSite"

    def ready(self):
        self.module.autodiscover()
