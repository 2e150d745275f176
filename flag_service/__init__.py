"""Feature flag registry with targeting rules and a cache-aside flag store."""

__version__ = "0.1.0"
