"""taskdb package initializer

MongoDB side of the task service: connection handling, the collection
validator and application-level document validation.
"""

__all__ = [
    "connect_db",
    "create_collections",
    "schema",
    "validation",
]
