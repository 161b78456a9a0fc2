"""Domain events for shift tracking."""
