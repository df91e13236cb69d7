"""Inbound events and derived planning context."""
