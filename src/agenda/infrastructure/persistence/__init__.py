"""Durable store adapters."""
