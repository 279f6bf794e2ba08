"""Spatial index assembly and queries."""
