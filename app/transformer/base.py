# Stream Transformer Base Class
#
# This module defines the contract shared by the outbound stream transformers:
# one instance per response, fed one generation event at a time, finalized once.

from abc import ABC, abstractmethod
from enum import Enum

from app.core.exceptions import StreamFinalizedError
from app.models.events import GenerationEvent


class StreamState(str, Enum):
    """Lifecycle of a stream transformer."""

    NOT_STARTED = "not_started"
    STREAMING = "streaming"
    FINALIZED = "finalized"


class StreamTransformer(ABC):
    """
    Abstract base class for outbound stream transformers.

    A transformer owns all per-response state and performs no I/O. The driver
    calls transform() for each event in arrival order and flush() exactly once
    when the upstream sequence ends. Each returned string is one complete SSE
    frame; frames must be written in the order they are returned.
    """

    def __init__(self) -> None:
        self._state = StreamState.NOT_STARTED

    @property
    @abstractmethod
    def protocol(self) -> str:
        """Name of the outbound protocol, used for metrics labels."""
        pass

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def finalized(self) -> bool:
        return self._state is StreamState.FINALIZED

    def transform(self, event: GenerationEvent) -> list[str]:
        """
        Apply one event and return the frames it produces (possibly none).

        Raises:
            StreamFinalizedError: If the stream was already finalized
            StreamSerializationError: If a frame cannot be rendered
        """
        self._ensure_open()
        self._state = StreamState.STREAMING
        return self._transform(event)

    def flush(self) -> list[str]:
        """
        Finalize the stream and return its closing frames (possibly none).

        Raises:
            StreamFinalizedError: If the stream was already finalized
        """
        self._ensure_open()
        self._state = StreamState.FINALIZED
        return self._flush()

    def _ensure_open(self) -> None:
        if self._state is StreamState.FINALIZED:
            raise StreamFinalizedError(f"{self.protocol} stream already finalized")

    @abstractmethod
    def _transform(self, event: GenerationEvent) -> list[str]:
        pass

    @abstractmethod
    def _flush(self) -> list[str]:
        pass
