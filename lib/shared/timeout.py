import time

# Milliseconds since epoch, the time unit used by the session bookkeeping.
def NowMs() -> int:
    return int(time.time() * 1000)

class Timeout:
    def __init__(self, clock = NowMs):
        self._clock = clock
        self._startMs = 0
        self._endMs = 0
        self._timeMs = 0

    def Set(self, milliseconds : int):
        self._startMs = self._clock()
        self._timeMs = milliseconds
        self._endMs = self._startMs + self._timeMs

    def SetAt(self, startMs : int, milliseconds : int):
        self._startMs = startMs
        self._timeMs = milliseconds
        self._endMs = self._startMs + self._timeMs

    def IsSet(self) -> bool:
        return (self.Left() > 0)

    def TimeEnd(self) -> int:
        return self._endMs

    def Left(self) -> int:
        if self._endMs == 0:
            return 0
        left = self._endMs - self._clock()
        if left < 0:
            left = 0
        return left
