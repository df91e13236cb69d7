"""Readiness diagnostics for the assistant configuration."""
