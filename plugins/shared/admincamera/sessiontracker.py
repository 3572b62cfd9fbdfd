import copy
import logging
import lib.shared.player as player
import lib.shared.scheduler as scheduler
import plugins.shared.admincamera.cooldown as cooldown
import plugins.shared.admincamera.formatting as formatting
import plugins.shared.admincamera.ignorefilter as ignorefilter
import plugins.shared.admincamera.reconciler as reconciler

Log = logging.getLogger(__name__)

ENTER_STARTED   = 0 # session opened, notifications allowed
ENTER_IGNORED   = 1 # session opened, admin is ignore-listed so nothing is broadcast
ENTER_COOLDOWN  = 2 # suppressed by cooldown, no state change
ENTER_DUPLICATE = 3 # admin already has an open session, no state change

class Session():
    def __init__(self, adminId : str, displayName : str, secondaryId : str, startTime : int):
        self.adminId = adminId
        self.displayName = displayName
        self.secondaryId = secondaryId
        self.startTime = startTime
        self.endTime = None
        self.durationMs = 0
        self.duration = None
        self.orphaned = False

    def IsOpen(self) -> bool:
        return self.endTime == None

    def Close(self, endTime : int, orphaned : bool = False):
        self.endTime = endTime
        self.durationMs = max(0, endTime - self.startTime)
        self.duration = formatting.FormatDuration(self.durationMs)
        self.orphaned = orphaned

    def ElapsedMs(self, now : int) -> int:
        if self.IsOpen():
            return max(0, now - self.startTime)
        return self.durationMs

    def Snapshot(self):
        return copy.copy(self)

    def __repr__(self):
        state = "open" if self.IsOpen() else ("orphaned" if self.orphaned else "closed")
        return f"Session({self.displayName} [{self.adminId}], {state}, started {self.startTime})"


class SessionStats():
    def __init__(self):
        self.Reset()

    def Reset(self):
        self.totalSessions = 0
        self.totalTime = 0
        self.peakUsers = 0
        self.peakTime = None
        self.firstEntryTime = None
        self.lastExitTime = None
        self.orphanedSessions = 0
        self.disconnectCleanups = 0

    def Copy(self):
        return copy.copy(self)


class EnterResult():
    def __init__(self, status : int, session : Session, activeCount : int, isFirstEntry : bool = False):
        self.status = status
        self.session = session
        self.activeCount = activeCount
        self.isFirstEntry = isFirstEntry

    def ShouldNotify(self) -> bool:
        return self.status == ENTER_STARTED

    def IsTracked(self) -> bool:
        return self.status in (ENTER_STARTED, ENTER_IGNORED)


class LeaveResult():
    def __init__(self, session : Session, activeCount : int, isLastExit : bool, ignored : bool = False, orphaned : bool = False):
        self.session = session
        self.activeCount = activeCount
        self.isLastExit = isLastExit
        self.ignored = ignored
        self.orphaned = orphaned

    def ShouldNotify(self) -> bool:
        return not self.ignored


class SessionTracker():
    """
    Owns every piece of admin camera state for the current match: the open
    sessions, the session history, the cooldown table, pending disconnect
    cleanups and the aggregate statistics.

    Events must be fed one at a time from the platform loop thread. Timestamps
    are milliseconds; when a call omits `now` the tracker clock is used.
    Orphan cleanups run from `scheduler.Tick()` and report through `onOrphanClosed`.
    """
    def __init__(self, sched : scheduler.Scheduler = None, ignoreFilter : ignorefilter.IgnoreFilter = None,
                 cooldownMs : int = 0, onOrphanClosed = None):
        self._scheduler = sched if sched != None else scheduler.Scheduler()
        self._ignoreFilter = ignoreFilter
        self._cooldownMs = max(0, cooldownMs)
        self._onOrphanClosed = onOrphanClosed
        self._cooldowns = cooldown.CooldownGate()
        self._orphans = reconciler.OrphanRegistry(self._scheduler)
        self._active : dict[str, Session] = {}
        self._history : list[Session] = []
        self._stats = SessionStats()

    def _Now(self, now : int) -> int:
        return self._scheduler.Now() if now == None else now

    def _IsIgnored(self, admin : player.Player) -> bool:
        return self._ignoreFilter != None and self._ignoreFilter.IsIgnored(admin)

    def OnEnter(self, admin : player.Player, now : int = None) -> EnterResult:
        now = self._Now(now)
        adminId = admin.GetId()

        if adminId in self._active:
            Log.debug("Admin %s already has an open camera session, ignoring enter", admin)
            return EnterResult(ENTER_DUPLICATE, self._active[adminId], len(self._active))

        ignored = self._IsIgnored(admin)
        if not ignored and self._cooldowns.IsSuppressed(adminId, now, self._cooldownMs):
            Log.info("Admin %s is on cooldown, skipping camera enter", admin)
            return EnterResult(ENTER_COOLDOWN, None, len(self._active))

        previousCount = len(self._active)
        session = Session(adminId, admin.GetName(), admin.GetSteamId(), now)
        self._active[adminId] = session
        self._history.append(session)
        self._stats.totalSessions += 1

        activeCount = len(self._active)
        if activeCount > self._stats.peakUsers:
            self._stats.peakUsers = activeCount
            self._stats.peakTime = now

        isFirstEntry = previousCount == 0
        if isFirstEntry:
            self._stats.firstEntryTime = now

        if ignored:
            Log.info("Ignore-listed admin %s entered admin camera. Active admins: %d", admin, activeCount)
            return EnterResult(ENTER_IGNORED, session, activeCount, isFirstEntry)

        self._cooldowns.Record(adminId, now)
        Log.info("Admin %s entered admin camera. Active admins: %d", admin, activeCount)
        return EnterResult(ENTER_STARTED, session, activeCount, isFirstEntry)

    def _Close(self, adminId : str, now : int, orphaned : bool) -> Session:
        session = self._active.pop(adminId)
        session.Close(now, orphaned)
        self._stats.totalTime += session.durationMs
        self._stats.lastExitTime = now
        if orphaned:
            self._stats.orphanedSessions += 1
            self._stats.disconnectCleanups += 1
        return session

    def OnLeave(self, admin : player.Player, now : int = None) -> LeaveResult:
        now = self._Now(now)
        adminId = admin.GetId()
        if adminId not in self._active:
            Log.debug("Admin %s left admin camera without a tracked session", admin)
            return None
        self._orphans.Cancel(adminId)
        session = self._Close(adminId, now, orphaned = False)
        activeCount = len(self._active)
        Log.info("Admin %s left admin camera after %s. Active admins: %d", admin, session.duration, activeCount)
        return LeaveResult(session, activeCount, activeCount == 0, ignored = self._IsIgnored(admin))

    def OnDisconnect(self, admin : player.Player, now : int = None, timeoutMs : int = 0) -> bool:
        now = self._Now(now)
        adminId = admin.GetId()
        session = self._active.get(adminId)
        if session == None:
            return False
        self._orphans.Add(adminId, session.Snapshot(), now, timeoutMs, self._OnOrphanExpired)
        Log.info("Admin %s disconnected while in admin camera, closing the session in %s unless they reconnect",
                 admin, formatting.FormatDuration(timeoutMs))
        return True

    def OnReconnect(self, admin : player.Player) -> bool:
        entry = self._orphans.Cancel(admin.GetId())
        if entry == None:
            return False
        Log.info("Admin %s reconnected, camera session kept open", admin)
        return True

    def _OnOrphanExpired(self, entry : reconciler.OrphanEntry):
        self.ReconcileOrphan(entry.adminId, entry.ExpiresAt())

    def ReconcileOrphan(self, adminId : str, now : int = None) -> LeaveResult:
        now = self._Now(now)
        entry = self._orphans.Cancel(adminId)
        if adminId not in self._active:
            Log.debug("No open session left to reconcile for %s", adminId)
            return None
        session = self._Close(adminId, now, orphaned = True)
        activeCount = len(self._active)
        snapshot = entry.snapshot if entry != None else session
        ignored = self._IsIgnored(player.Player(adminId, session.displayName, snapshot.secondaryId))
        Log.info("Closed orphaned camera session of %s after %s. Active admins: %d", session.displayName, session.duration, activeCount)
        result = LeaveResult(session, activeCount, activeCount == 0, ignored = ignored, orphaned = True)
        if self._onOrphanClosed != None:
            self._onOrphanClosed(result)
        return result

    def ResetForNewMatch(self):
        self._orphans.Clear()
        self._active.clear()
        self._history = []
        self._cooldowns.Clear()
        self._stats.Reset()
        Log.info("New game started - Admin camera tracking reset")

    def GetActiveCount(self) -> int:
        return len(self._active)

    def GetActiveSessions(self) -> list[Session]:
        return list(self._active.values())

    def GetHistory(self) -> list[Session]:
        return list(self._history)

    def GetStats(self) -> SessionStats:
        return self._stats.Copy()

    def GetCooldownCount(self) -> int:
        return len(self._cooldowns)

    def GetPendingOrphanCount(self) -> int:
        return len(self._orphans)

    def GetState(self, adminId : str) -> int:
        if self._orphans.Has(adminId):
            return reconciler.STATE_PENDING_ORPHAN
        if adminId in self._active:
            return reconciler.STATE_ACTIVE
        for session in reversed(self._history):
            if session.adminId == adminId:
                return reconciler.STATE_CLOSED_ORPHANED if session.orphaned else reconciler.STATE_NONE
        return reconciler.STATE_NONE
