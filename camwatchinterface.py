import io
import logging
import os
import queue
import threading
from file_read_backwards import FileReadBackwards
import lib.shared.pswd as pswd
import lib.shared.rcon as rcon
import logMessage

Log = logging.getLogger(__name__)

WD_MESSAGES = \
{
    pswd.WD_EVENT_PROCESS_UNAVAILABLE : "wd_unavailable",
    pswd.WD_EVENT_PROCESS_EXISTING : "wd_existing",
    pswd.WD_EVENT_PROCESS_STARTED : "wd_started",
    pswd.WD_EVENT_PROCESS_DIED : "wd_died",
    pswd.WD_EVENT_PROCESS_RESTARTED : "wd_restarted",
}

class IServerInterface():
    def __init__(self):
        pass

    def Open(self) -> bool:
        return False

    def Close(self):
        pass

    def IsOpened(self) -> bool:
        return False

    def Warn(self, playerId : str, text : str) -> str:
        return None

    def ListPlayers(self) -> str:
        return None

    def GetMessages(self) -> queue.Queue:
        return None


class AServerInterface(IServerInterface):

    def __init__(self):
        self._queueLock = threading.Lock()
        self._messageQueueSwap = queue.Queue()
        self._workingMessageQueue = queue.Queue()
        self._isOpened = False

    def Open(self) -> bool:
        if self._isOpened:
            self.Close()
        return True

    def Close(self):
        if self._isOpened:
            self._isOpened = False
        super().Close()

    def IsOpened(self) -> bool:
        return self._isOpened

    def _Enqueue(self, message : logMessage.LogMessage):
        with self._queueLock:
            self._workingMessageQueue.put(message)

    def GetMessages(self) -> queue.Queue:
        with self._queueLock:
            tmp = self._workingMessageQueue
            self._workingMessageQueue = self._messageQueueSwap
            self._workingMessageQueue.queue.clear()
            self._messageQueueSwap = tmp
            return self._messageQueueSwap


class RconInterface(AServerInterface):
    """
    Squad server seen through two channels: the server log file, tailed on a
    reader thread, and the RCON connection, which carries commands out and
    chat lines in. Both feed one swap queue drained by the platform loop.
    """
    def __init__(self, ipAddress : str, port : int, password : str, logPath : str, readDelay : float = 0.1,
                 procName : str = "SquadGameServer.exe", replayHistory : bool = True):
        super().__init__()
        self._stopEvent = threading.Event()
        self._logReaderTime = readDelay
        self._logReaderThread : threading.Thread = None
        self._logPath = logPath
        self._replayHistory = replayHistory
        self._rcon = rcon.Rcon((ipAddress, port), password, onChat=self._OnChat)
        self._watchdog = pswd.ProcessWatchdog(procName, self._OnWDEvent)

    def __del__(self):
        self.Close()

    def _OnWDEvent(self, event):
        if event == pswd.WD_EVENT_PROCESS_DIED:
            # the next command reconnects to the restarted server
            self._rcon.Close()
        if event in WD_MESSAGES:
            self._Enqueue(logMessage.LogMessage(WD_MESSAGES[event]))

    def _OnChat(self, line : str):
        self._Enqueue(logMessage.LogMessage(line.strip()))

    def Warn(self, playerId : str, text : str) -> str:
        if self.IsOpened():
            return self._rcon.Warn(playerId, text)
        raise rcon.RconError("Server interface is not opened.")

    def ListPlayers(self) -> str:
        if self.IsOpened():
            return self._rcon.ListPlayers()
        return None

    def ParseLogThreadHandler(self):
        # the first open follows the end of the file, a reopened log is read from its start
        fromEnd = True
        while not self._stopEvent.is_set():
            try:
                log = open(self._logPath, "r", encoding="utf-8", errors="replace")
            except OSError:
                self._stopEvent.wait(self._logReaderTime)
                continue
            with log:
                if fromEnd:
                    log.seek(0, io.SEEK_END)
                    fromEnd = False
                self._FollowLog(log)

    def _FollowLog(self, log):
        pending = ""
        while not self._stopEvent.is_set():
            chunk = log.read()
            if chunk == "":
                if self._IsLogReplaced(log):
                    Log.info("Server log %s was replaced, reading the new file from the start", self._logPath)
                    return
                self._stopEvent.wait(self._logReaderTime)
                continue
            lines = (pending + chunk).split("\n")
            pending = lines.pop()
            with self._queueLock:
                for line in lines:
                    line = line.rstrip("\r")
                    if len(line) > 0:
                        self._workingMessageQueue.put(logMessage.LogMessage(line))

    def _IsLogReplaced(self, log) -> bool:
        """ The server rotates its log on restart, either by moving it aside or truncating it in place. """
        try:
            current = os.stat(self._logPath)
        except FileNotFoundError:
            return False
        opened = os.fstat(log.fileno())
        if (current.st_dev, current.st_ino) != (opened.st_dev, opened.st_ino):
            return True
        return current.st_size < log.tell()

    def _ReadPrestartLines(self) -> list[str]:
        """Walks the log backwards to the start of the current match."""
        prestartLines = []
        with FileReadBackwards(self._logPath, encoding="utf-8") as logFile:
            for line in logFile:
                if logMessage.NEW_GAME_PATTERN.match(line):
                    if logMessage.TRANSITION_LEVEL in line:
                        continue
                    prestartLines.append(line)
                    break
                prestartLines.append(line)
        prestartLines.reverse()
        return prestartLines

    def Open(self) -> bool:
        if not super().Open():
            return False

        if not os.path.exists(self._logPath):
            try:
                with open(self._logPath, "w", encoding="utf-8"):
                    pass
            except OSError as e:
                Log.error("Unable to create log file at path %s: %s", self._logPath, str(e))
                return False

        if not self._rcon.Open():
            return False
        self._watchdog.Start()

        if self._replayHistory:
            try:
                prestartLines = self._ReadPrestartLines()
            except OSError as e:
                Log.error("Unable to open log file at path %s to read, abort startup : %s", self._logPath, str(e))
                self._rcon.Close()
                self._watchdog.Stop()
                return False
            Log.debug("Replaying %d log lines written before startup", len(prestartLines))
            with self._queueLock:
                for line in prestartLines:
                    self._workingMessageQueue.put(logMessage.LogMessage(line, True))

        self._stopEvent.clear()
        self._logReaderThread = threading.Thread(target=self.ParseLogThreadHandler, daemon=True)
        self._logReaderThread.start()
        self._isOpened = True
        return True

    def Close(self):
        if self.IsOpened():
            self._stopEvent.set()
            if self._logReaderThread != None:
                self._logReaderThread.join()
                self._logReaderThread = None
            self._rcon.Close()
            self._messageQueueSwap.queue.clear()
            self._workingMessageQueue.queue.clear()
            self._watchdog.Stop()
            super().Close()
