"""
Contracts Domain

Templates with {{PLACEHOLDER}} tokens rendered against customer, project,
scope and collaborator data into contract documents, plus their lifecycle
(draft -> final -> signed, canceled) and e-signature webhook.
"""

from .router import router
from .webhooks import router as webhooks_router

__all__ = ["router", "webhooks_router"]
