# backend/labelscan/apps.py
from django.apps import AppConfig


class LabelscanConfig(AppConfig):
    name = "labelscan"
    verbose_name = "Label scan"
