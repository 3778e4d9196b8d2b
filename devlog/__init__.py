"""Devlog: AI coding session logs and daily work summaries."""
