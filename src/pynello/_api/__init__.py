"""Endpoint modules of the nello public API."""
