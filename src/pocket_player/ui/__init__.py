"""Textual widgets for the now-playing screen."""
