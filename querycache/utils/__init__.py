"""Wiring helpers."""
