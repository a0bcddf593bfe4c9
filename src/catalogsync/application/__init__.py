"""
Application layer - sync engines and services built on the core ports.
"""
