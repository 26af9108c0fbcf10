"""Settings, errors, logging and key handling."""
