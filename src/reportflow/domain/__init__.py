"""Domain layer for ReportFlow."""
