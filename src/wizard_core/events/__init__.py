"""Compliance event transports."""
