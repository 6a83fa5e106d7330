"""HTTP API for triggering and observing curation runs."""
