"""Instant messaging services."""
