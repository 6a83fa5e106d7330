"""Prompt templates for the LLM analyzer."""

from bjj_curator.services.prompts.analysis import VIDEO_ANALYZER_V2

__all__ = ["VIDEO_ANALYZER_V2"]
