"""jokegate: a resilient client for the Chuck Norris joke API."""

__version__ = "0.1.0"
