"""Core Application Layer: the request executor and its error taxonomy.

Composes the retry policy, rate limiter and cache through the interfaces
defined in the domain layer.
"""
