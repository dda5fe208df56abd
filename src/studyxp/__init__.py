"""Engagement engine for the student dashboard."""
