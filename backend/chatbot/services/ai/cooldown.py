"""
Cooldown tracking for rate-limited backends.

A backend that answers with a rate-limit error is suppressed from automatic
selection for a fixed window. Expiry is evaluated lazily on lookup; there is
no background sweep.
"""
import time
from threading import Lock
from typing import Callable, Dict, Optional

from chatbot.core.logging import get_logger
from chatbot.core.metrics import record_backend_suppressed
from chatbot.services.ai.schema import BackendId

logger = get_logger(__name__)

DEFAULT_COOLDOWN_SECONDS = 5 * 60


class CooldownTracker:
    """
    Per-backend suppression window.

    Holds at most one entry per backend (backend -> suppressed_since). An
    entry only suppresses while `now - suppressed_since <= window_seconds`;
    expired entries are removed the next time they are looked up.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = Lock()
        self._suppressed_since: Dict[BackendId, float] = {}

    def is_suppressed(self, backend_id: BackendId, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        with self._lock:
            since = self._suppressed_since.get(backend_id)
            if since is None:
                return False
            if now - since > self.window_seconds:
                del self._suppressed_since[backend_id]
                logger.info("backend_cooldown_expired", backend=backend_id.value)
                return False
            return True

    def mark_suppressed(self, backend_id: BackendId, now: Optional[float] = None) -> None:
        """Start (or restart) the cooldown window for a backend."""
        now = self._clock() if now is None else now
        with self._lock:
            self._suppressed_since[backend_id] = now
        record_backend_suppressed(backend_id.value)
        logger.warning(
            "backend_suppressed",
            backend=backend_id.value,
            cooldown_seconds=self.window_seconds,
        )

    def snapshot(self, now: Optional[float] = None) -> Dict[str, float]:
        """
        Remaining cooldown seconds for every currently suppressed backend.

        Expired entries are pruned as a side effect, same as is_suppressed.
        """
        now = self._clock() if now is None else now
        remaining: Dict[str, float] = {}
        with self._lock:
            for backend_id, since in list(self._suppressed_since.items()):
                elapsed = now - since
                if elapsed > self.window_seconds:
                    del self._suppressed_since[backend_id]
                else:
                    remaining[backend_id.value] = round(self.window_seconds - elapsed, 3)
        return remaining
