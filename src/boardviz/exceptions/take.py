"""Take (recorded session) exceptions."""

from .base import BoardVizError


class TakeLoadError(BoardVizError):
    """A take could not be loaded because it lacks a valid event sequence."""

    def __init__(self, reason: str, source: str | None = None):
        """
        Initialize take load error.

        Args:
            reason: Why the take was rejected
            source: File path or other description of where the data came from
        """
        where = f" from {source}" if source else ""
        super().__init__(
            user_message=f"Could not load take{where}: {reason}",
            technical_message=f"Take load failed{where}: {reason}",
            recoverable=True,
            recovery_hint=(
                "A take must be a JSON object with an 'events' list of "
                "{\"t\": <ms>, \"info\": <event>} items. "
                "Re-export it with 'boardviz run --record'."
            ),
        )
        self.reason = reason
        self.source = source
