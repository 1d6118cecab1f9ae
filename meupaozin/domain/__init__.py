"""Bakery entities, request models and domain errors."""
