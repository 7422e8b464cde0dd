"""Best-effort forwarding of uploaded images to a secondary listener."""

from imagerelay.relay.dispatch import RelayDispatcher
from imagerelay.relay.envelope import RelayEnvelope, RelayOutcome
from imagerelay.relay.sender import RelaySender

__all__ = ["RelayDispatcher", "RelayEnvelope", "RelayOutcome", "RelaySender"]
