"""
Core Module

Cross-cutting concerns shared by every layer: configuration, structured
logging, the exception hierarchy and the provider rate limiter.
"""
