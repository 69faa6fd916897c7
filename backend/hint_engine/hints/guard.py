class RequestGuard:
    """Single-slot, non-queueing guard: at most one holder at a time."""

    def __init__(self):
        self._held = False

    @property
    def busy(self) -> bool:
        return self._held

    def try_acquire(self) -> bool:
        if self._held:
            return False
        self._held = True
        return True

    def release(self) -> None:
        self._held = False
