"""Core domain layer: entities, value objects, events, exceptions and protocols."""
