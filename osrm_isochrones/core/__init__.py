"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Routing profiles, server limits, CRS identifiers
- exceptions: Custom exception hierarchy
"""
