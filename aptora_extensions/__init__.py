"""Aptora Extensions: read-only reporting API over the Aptora database."""

__version__ = "0.1.0"
