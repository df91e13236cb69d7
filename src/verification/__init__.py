"""Post-condition verification of executed runs."""
