"""Plan validation, planning, and receipt rendering."""
