"""Data acquisition layer: records and dataset readers."""
