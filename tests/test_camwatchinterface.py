import os
import threading
import time
import pytest
import camwatchinterface
import lib.shared.pswd as pswd


def WaitFor(predicate, timeout = 2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class LogFollower():
    def __init__(self, iface):
        self.iface = iface
        self.lines = []
        self.thread = threading.Thread(target=iface.ParseLogThreadHandler, daemon=True)

    def Drain(self):
        messages = self.iface.GetMessages()
        while not messages.empty():
            self.lines.append(messages.get().content)
        return self.lines

    def Has(self, line):
        return line in self.Drain()


@pytest.fixture
def follower(tmp_path):
    logPath = tmp_path / "SquadGame.log"
    logPath.write_text("old match line\n", encoding="utf-8")
    iface = camwatchinterface.RconInterface("127.0.0.1", 21114, "pw", str(logPath), readDelay=0.01)
    follower = LogFollower(iface)
    follower.thread.start()
    yield follower, logPath
    iface._stopEvent.set()
    follower.thread.join(2)


def Append(path, text):
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


def test_tail_starts_at_end(follower):
    follower, logPath = follower
    Append(logPath, "first live line\n")
    assert WaitFor(lambda : follower.Has("first live line"))
    assert "old match line" not in follower.lines


def test_partial_lines_wait_for_newline(follower):
    follower, logPath = follower
    Append(logPath, "half ")
    time.sleep(0.05)
    assert follower.Drain() == []
    Append(logPath, "a line\n")
    assert WaitFor(lambda : follower.Has("half a line"))


def test_rotated_log_is_reopened(follower):
    follower, logPath = follower
    Append(logPath, "before rotation\n")
    assert WaitFor(lambda : follower.Has("before rotation"))
    os.replace(logPath, str(logPath) + ".bak")
    logPath.write_text("after rotation\n", encoding="utf-8")
    assert WaitFor(lambda : follower.Has("after rotation"))
    Append(str(logPath) + ".bak", "stale write\n")
    Append(logPath, "second line\n")
    assert WaitFor(lambda : follower.Has("second line"))
    assert "stale write" not in follower.lines


def test_truncated_log_is_read_from_start(follower):
    follower, logPath = follower
    Append(logPath, "a long line before the restart\n")
    assert WaitFor(lambda : follower.Has("a long line before the restart"))
    with open(logPath, "w", encoding="utf-8") as f:
        f.write("new\n")
    assert WaitFor(lambda : follower.Has("new"))


def test_process_death_drops_rcon(tmp_path):
    iface = camwatchinterface.RconInterface("127.0.0.1", 21114, "pw", str(tmp_path / "SquadGame.log"))
    closed = []
    iface._rcon.Close = lambda : closed.append(True)
    iface._OnWDEvent(pswd.WD_EVENT_PROCESS_DIED)
    assert closed == [True]
    assert iface.GetMessages().get().content == "wd_died"
