"""Command runtime wiring."""
