"""Persistence: database, schema store models, dynamic tables and registry."""
