"""Shared building blocks for the service-offering wizard.

Settings, domain models, persistence, secret store, document hosting,
remote document fetching, signer and broker clients, telemetry.
"""
