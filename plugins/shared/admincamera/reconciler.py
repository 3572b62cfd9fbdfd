import logging
import lib.shared.scheduler as scheduler

Log = logging.getLogger(__name__)

# Per-admin session states as seen by the disconnect handling
STATE_NONE              = 0 # no open session
STATE_ACTIVE            = 1 # open session, admin online
STATE_PENDING_ORPHAN    = 2 # open session, admin disconnected, cleanup task running
STATE_CLOSED_ORPHANED   = 3 # last session force-closed by the cleanup task

STATE_NAMES = \
{
    STATE_NONE : "NONE",
    STATE_ACTIVE : "ACTIVE",
    STATE_PENDING_ORPHAN : "PENDING_ORPHAN",
    STATE_CLOSED_ORPHANED : "CLOSED_ORPHANED",
}

class OrphanEntry():
    def __init__(self, adminId : str, snapshot, disconnectTime : int, timeoutMs : int):
        self.adminId = adminId
        self.snapshot = snapshot
        self.disconnectTime = disconnectTime
        self.timeoutMs = timeoutMs
        self.task : scheduler.ScheduledTask = None

    def ExpiresAt(self) -> int:
        return self.disconnectTime + self.timeoutMs

    def __repr__(self):
        return f"OrphanEntry({self.adminId}, disconnected at {self.disconnectTime})"


class OrphanRegistry():
    def __init__(self, sched : scheduler.Scheduler):
        self._scheduler = sched
        self._entries : dict[str, OrphanEntry] = {}

    def Add(self, adminId : str, snapshot, disconnectTime : int, timeoutMs : int, onExpired) -> OrphanEntry:
        previous = self.Cancel(adminId)
        if previous != None:
            Log.warning("Admin %s disconnected again while a cleanup was pending, restarting the timeout", adminId)
        entry = OrphanEntry(adminId, snapshot, disconnectTime, timeoutMs)
        entry.task = self._scheduler.Schedule(timeoutMs, self._Expire, entry, onExpired,
                                              name = f"orphan-cleanup:{adminId}", startMs = disconnectTime)
        self._entries[adminId] = entry
        return entry

    def _Expire(self, entry : OrphanEntry, onExpired):
        if self._entries.get(entry.adminId) is not entry:
            Log.debug("Discarding stale cleanup for %s", entry.adminId)
            return
        del self._entries[entry.adminId]
        onExpired(entry)

    def Cancel(self, adminId : str) -> OrphanEntry:
        entry = self._entries.pop(adminId, None)
        if entry != None:
            self._scheduler.Cancel(entry.task)
        return entry

    def Has(self, adminId : str) -> bool:
        return adminId in self._entries

    def Clear(self):
        for adminId in list(self._entries.keys()):
            self.Cancel(adminId)

    def __len__(self):
        return len(self._entries)
