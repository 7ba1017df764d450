"""Domain models: HTTP request/response values and the request context."""
