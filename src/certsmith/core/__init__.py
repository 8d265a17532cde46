"""Core types, errors and the entity model."""
