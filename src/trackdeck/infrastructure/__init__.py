"""Infrastructure layer: persistence, remote platforms and observability."""
