"""Text normalization helpers shared by storage and scoring."""

import re


def normalize_technique_name(name: str) -> str:
    """Canonical form used for taxonomy lookups and library storage.

    "Knee-Slice_Pass " becomes "knee slice pass".
    """
    lowered = name.lower().replace("_", " ").replace("-", " ")
    cleaned = re.sub(r"[^a-z0-9 ]", "", lowered)
    return " ".join(cleaned.split())


def normalize_source_key(name: str) -> str:
    """Case-folded, whitespace-collapsed key for instructors and sources."""
    return " ".join(name.strip().lower().split())
