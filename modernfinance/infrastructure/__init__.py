"""
Infrastructure Layer

External systems the core talks to directly. Currently the Redis cache.
"""
