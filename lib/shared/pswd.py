import logging
import threading
import psutil

Log = logging.getLogger(__name__)

WD_EVENT_PROCESS_UNAVAILABLE = -1 # not existing on start of watch
WD_EVENT_PROCESS_EXISTING    = 0 # raised only once upon start of watch
WD_EVENT_PROCESS_DIED        = 1 # was alive before but now dead
WD_EVENT_PROCESS_STARTED     = 2 # was not running on start of watch, came online
WD_EVENT_PROCESS_RESTARTED   = 3 # was alive, died, then started

def FindPid(processName : str) -> int:
    for proc in psutil.process_iter(["name"]):
        if proc.info["name"] == processName:
            return proc.pid
    return -1

def IsRunning(processName : str) -> bool:
    return FindPid(processName) != -1

class ProcessWatchdog:
    """Polls the game server process with psutil and reports state changes through onEvent."""
    def __init__(self, processName : str, onEvent, frameTime : float = 1.0):
        self._processName = processName
        self._onEvent = onEvent
        self._frameTime = frameTime
        self._stopEvent = threading.Event()
        self._watchThread : threading.Thread = None

    def _Raise(self, event : int):
        try:
            self._onEvent(event)
        except Exception as ex:
            Log.error("Watchdog listener failed on event %d : %s", event, str(ex))

    def _WatchThreadHandler(self):
        pid = FindPid(self._processName)
        isAlive = pid != -1
        hasDied = False
        self._Raise(WD_EVENT_PROCESS_EXISTING if isAlive else WD_EVENT_PROCESS_UNAVAILABLE)

        while not self._stopEvent.wait(self._frameTime):
            if pid != -1 and psutil.pid_exists(pid):
                continue
            pid = FindPid(self._processName)
            if pid == -1:
                if isAlive:
                    Log.warning("Server process %s has died", self._processName)
                    self._Raise(WD_EVENT_PROCESS_DIED)
                    isAlive = False
                    hasDied = True
            elif not isAlive:
                isAlive = True
                if hasDied:
                    self._Raise(WD_EVENT_PROCESS_RESTARTED)
                    hasDied = False
                else:
                    self._Raise(WD_EVENT_PROCESS_STARTED)

    def Start(self):
        if self._watchThread == None:
            self._stopEvent.clear()
            self._watchThread = threading.Thread(target=self._WatchThreadHandler, daemon=True)
            self._watchThread.start()

    def Stop(self):
        if self._watchThread != None:
            self._stopEvent.set()
            self._watchThread.join()
            self._watchThread = None
