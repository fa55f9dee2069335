"""Adapters for the collaborators the lifecycle manager depends on."""

from uvocollab.services.contracts import (
    ContractDispatcher,
    ContractDispatchError,
    ContractEnvelope,
    ContractRequest,
    ESignClient,
)
from uvocollab.services.notifications import (
    NotificationService,
    NotificationSink,
    render_notification,
)

__all__ = [
    "ContractDispatchError",
    "ContractDispatcher",
    "ContractEnvelope",
    "ContractRequest",
    "ESignClient",
    "NotificationService",
    "NotificationSink",
    "render_notification",
]
