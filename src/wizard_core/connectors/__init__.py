"""Outbound connectors for remote documents."""
