"""IO helpers for inbound payload validation."""
