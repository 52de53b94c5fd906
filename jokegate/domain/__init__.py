"""Domain Layer: models, ports and events independent of any transport."""
