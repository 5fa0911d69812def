"""
Client modules for external services.

- MongoStore: MongoDB job collection
"""
from num_search_remediation.clients.mongo_client import MongoStore

__all__ = ["MongoStore"]
