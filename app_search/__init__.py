"""Semantic search over a small app catalog."""
