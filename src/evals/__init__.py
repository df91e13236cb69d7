"""Evaluation snapshot recording."""
