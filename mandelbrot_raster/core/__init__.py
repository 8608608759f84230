"""Escape-time iteration and view window mapping."""
