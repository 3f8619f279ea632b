from django.contrib import admin
from django.urls import path

from . import views

urlpatterns = [
    path(
        "questions/<slug:slug>/",
        views.QuestionDetailView.as_view(),
        name="question-detail",
    ),
    path("admin/", admin.site.urls),
]
