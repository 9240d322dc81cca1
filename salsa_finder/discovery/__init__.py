"""Event discovery pipeline."""
