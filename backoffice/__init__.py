"""Back-office API service with a read-through caching layer."""

__version__ = "0.1.0"
