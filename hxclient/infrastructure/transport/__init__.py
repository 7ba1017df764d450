"""Transport adapters implementing the Transport interface."""
