"""
Core - domain model, ports and the exception hierarchy.

Nothing in core performs I/O; adapters implement the ports.
"""
