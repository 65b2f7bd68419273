"""Adapters implementing the unit-of-work ports."""
