"""Scheduling engine for the dental clinic client: day grid, navigation and appointment lifecycle."""
