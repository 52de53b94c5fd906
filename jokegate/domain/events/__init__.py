"""Domain events emitted around remote calls."""
