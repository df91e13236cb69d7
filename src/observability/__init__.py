"""Logging, telemetry, and evidence recording."""
