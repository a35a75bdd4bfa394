"""Utility helpers for herald."""
