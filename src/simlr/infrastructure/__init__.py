"""Infrastructure layer: persistence, integrations, security and observability."""
