"""Retrieval pipelines and response formatting."""
