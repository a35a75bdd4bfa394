"""CLI module for herald."""
