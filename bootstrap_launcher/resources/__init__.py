"""Packaged template archives."""
