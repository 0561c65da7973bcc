# backend/labelscan/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path("ping", views.ping),
    path("analyze/", views.analyze),
    path("analyze/recalculate/", views.recalculate),
    path("ocr/analyze/", views.ocr_analyze),
]
