"""Cross-cutting configuration, logging and security setup."""
