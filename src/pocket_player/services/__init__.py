"""Playback, metering, and audio output services."""
