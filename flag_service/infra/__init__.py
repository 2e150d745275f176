"""Infrastructure adapters: cache, logging and metrics."""
