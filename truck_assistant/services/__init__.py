"""Outbound integrations (geocoding, video search) and reference lookups."""
