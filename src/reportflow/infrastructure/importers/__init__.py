"""File importers for bulk record uploads."""

from reportflow.infrastructure.importers.tabular_reader import TabularReader

__all__ = ["TabularReader"]
