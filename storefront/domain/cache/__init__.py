"""
Cache Domain Module

Domain-Driven Design implementation for cache management.
Contains entities, value objects, the store interface and domain services.
"""
