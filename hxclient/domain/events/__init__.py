"""Domain Event definitions.

Represents significant occurrences during a request (cache hits, retries,
rate limiting) that other parts of the system might react to.
"""
