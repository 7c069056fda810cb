"""Domain layer: entities, value objects, DTOs, ports and exceptions."""
