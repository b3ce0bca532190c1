"""Application layer: use cases and background workers."""
