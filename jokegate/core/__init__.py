"""Core Layer: application use cases built on the domain ports."""
