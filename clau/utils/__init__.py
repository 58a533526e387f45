"""Utility helpers for clau."""
