"""Application wiring for ReportFlow."""

from reportflow.application.context import AppContext, app_context, create_app_context

__all__ = ["AppContext", "app_context", "create_app_context"]
