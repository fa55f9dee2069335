"""Cosmos DB access layer."""

from uvocollab.database.client import CosmosClient

__all__ = ["CosmosClient"]
