"""Infrastructure layer: database, Redis and other I/O adapters."""
