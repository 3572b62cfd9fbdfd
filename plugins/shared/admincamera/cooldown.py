import logging

Log = logging.getLogger(__name__)

class CooldownGate():
    """Per-admin suppression window, keyed by admin id, timestamps in milliseconds."""
    def __init__(self):
        self._lastPermitted : dict[str, int] = {}

    def IsSuppressed(self, adminId : str, now : int, windowMs : int) -> bool:
        if adminId not in self._lastPermitted:
            return False
        elapsed = now - self._lastPermitted[adminId]
        if elapsed < windowMs:
            Log.debug("Admin %s is on cooldown, %d ms left", adminId, windowMs - elapsed)
            return True
        return False

    def Record(self, adminId : str, now : int):
        self._lastPermitted[adminId] = now

    def Clear(self):
        self._lastPermitted.clear()

    def __len__(self):
        return len(self._lastPermitted)
