"""Inkwell: content-management backend for a self-hosted blogging admin."""

__version__ = "1.0.0"
