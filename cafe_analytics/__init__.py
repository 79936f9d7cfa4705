"""Reporting backend for the cafe operations dashboard."""
