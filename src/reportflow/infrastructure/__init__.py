"""Infrastructure layer for ReportFlow."""
