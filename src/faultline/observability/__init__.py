"""Logging configuration and diagnostic reports."""
