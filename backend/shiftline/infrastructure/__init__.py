"""Infrastructure layer: record stores, reference registry and event bus."""
