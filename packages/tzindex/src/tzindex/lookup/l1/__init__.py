"""Geometry model and bounding-volume hierarchy."""
