"""Repository modules for each Cosmos DB container."""

from uvocollab.database.repositories.collaborations import CollaborationRepository
from uvocollab.database.repositories.notifications import NotificationRepository

__all__ = [
    "CollaborationRepository",
    "NotificationRepository",
]
