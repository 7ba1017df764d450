"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the client to the outside world (network, disk cache, configuration
files, console) by implementing the interfaces defined in the domain layer.
"""
