"""ReportFlow - runtime-defined report tables with a two-stage review workflow.

Authors define report tables at runtime, departments submit records against
them, and every record passes a moderator review and an authority decision
before it is final.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
