"""
Infrastructure Layer

External-facing implementations: the cache tiers and the Redis client.
"""
