"""Domain layer: entity model, ports, errors and the unit-of-work engine."""
