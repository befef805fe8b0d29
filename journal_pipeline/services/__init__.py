"""Request-scoped application services."""
