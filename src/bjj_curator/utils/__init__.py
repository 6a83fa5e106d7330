"""Shared utilities: configuration, logging, retries and database access."""
