import logging
import traceback
import lib.shared.timeout as timeout

Log = logging.getLogger(__name__)

class ScheduledTask():
    def __init__(self, name : str, deadline : timeout.Timeout, callback, args : tuple):
        self.name = name
        self._deadline = deadline
        self._callback = callback
        self._args = args

    def IsDue(self) -> bool:
        return not self._deadline.IsSet()

    def GetDueTime(self) -> int:
        return self._deadline.TimeEnd()

    def Run(self):
        self._callback(*self._args)

    def __repr__(self):
        return f"ScheduledTask({self.name}, due at {self.GetDueTime()})"


class Scheduler():
    """
    Deferred callbacks polled from the platform loop tick.

    A task is owned by the scheduler until it either fires or is cancelled,
    whichever comes first; both paths drop it from the pending list before
    anything else happens, so a task never runs twice and never runs after
    a successful Cancel.
    """
    def __init__(self, clock = timeout.NowMs):
        self._clock = clock
        self._pending : list[ScheduledTask] = []

    def Now(self) -> int:
        return self._clock()

    def Schedule(self, delayMs : int, callback, *args, name : str = "", startMs : int = None) -> ScheduledTask:
        deadline = timeout.Timeout(self._clock)
        if startMs == None:
            deadline.Set(delayMs)
        else:
            deadline.SetAt(startMs, delayMs)
        task = ScheduledTask(name, deadline, callback, args)
        self._pending.append(task)
        Log.debug("Scheduled %s", task)
        return task

    def Cancel(self, task : ScheduledTask) -> bool:
        if task in self._pending:
            self._pending.remove(task)
            Log.debug("Cancelled %s", task)
            return True
        return False

    def GetPendingCount(self) -> int:
        return len(self._pending)

    def Clear(self):
        self._pending.clear()

    # Called each loop tick, returns the number of tasks fired.
    def Tick(self) -> int:
        due = [task for task in self._pending if task.IsDue()]
        due.sort(key = lambda t : t.GetDueTime())
        fired = 0
        for task in due:
            # an earlier callback may have cancelled this one
            if task not in self._pending:
                continue
            self._pending.remove(task)
            try:
                task.Run()
            except Exception as ex:
                Log.error("Exception [%s] caught while running %s\n %s", str(ex), task, traceback.format_exc())
            fired += 1
        return fired
