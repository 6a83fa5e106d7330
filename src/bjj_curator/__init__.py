"""BJJ instructional video curation engine."""

__version__ = "0.1.0"
