"""
People Directory Page Cache

Tiered caching (in-process memory + Redis) for the person, town and homepage
pages of a people directory.
"""

__version__ = "1.0.0"
