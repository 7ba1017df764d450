"""Domain Layer: value objects, events and interfaces (ports).

Has no dependency on concrete transports, caches or rate limiters.
"""
