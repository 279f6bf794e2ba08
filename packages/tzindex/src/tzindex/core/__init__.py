"""Shared configuration, logging and error primitives."""
