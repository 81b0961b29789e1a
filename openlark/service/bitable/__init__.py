"""Bitable (multi-dimensional table) services."""
