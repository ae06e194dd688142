"""Connection loss handling."""

import logging
from dataclasses import dataclass

from planning_poker.services.broadcast import HOST_DISCONNECTED, BroadcastCoordinator
from planning_poker.services.registry import DisconnectResult, SessionRegistry

_logger = logging.getLogger(__name__)


@dataclass
class DisconnectReconciler:
    """Remove departed connections and tell the room what happened."""

    registry: SessionRegistry
    broadcaster: BroadcastCoordinator

    def handle_disconnect(self, connection_id: str) -> DisconnectResult | None:
        """Reconcile a lost connection; safe to call more than once."""
        result = self.registry.disconnect_connection(connection_id)
        if result is None:
            return None
        if result.was_host:
            self.broadcaster.notify(result.remaining, HOST_DISCONNECTED, None)
        else:
            _logger.info(
                "Participant left: session=%s remaining=%s",
                result.session_id,
                len(result.remaining),
            )
            self.broadcaster.publish_session(result.session_id)
        return result
