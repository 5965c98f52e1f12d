"""Query views and the email export report."""

from .email_report import EmailExporter, build_report
from .queries import ReportEngine

__all__ = ["EmailExporter", "ReportEngine", "build_report"]
