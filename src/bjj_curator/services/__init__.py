"""Curation engine services."""
