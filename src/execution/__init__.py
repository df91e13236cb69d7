"""Plan execution against external connectors and run persistence."""
