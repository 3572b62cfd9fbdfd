import lib.shared.player as player
import threading

class PlayerManager():
    def __init__(self):
        self._players : dict[str, player.Player] = {}
        self._lock = threading.Lock()

    def GetPlayerCount(self) -> int:
        with self._lock:
            return len(self._players)

    def GetAllPlayers(self) -> list[player.Player]:
        with self._lock:
            return list(self._players.values())

    def GetPlayerById(self, eosId : str) -> player.Player:
        with self._lock:
            return self._players.get(eosId)

    def GetPlayerByController(self, controller : str) -> player.Player:
        with self._lock:
            for pl in self._players.values():
                if pl.GetController() == controller:
                    return pl
        return None

    def AddPlayer(self, pl : player.Player) -> bool:
        with self._lock:
            if pl.GetId() in self._players:
                return False
            self._players[pl.GetId()] = pl
            return True

    def RemovePlayer(self, pl : player.Player):
        self.RemovePlayerById(pl.GetId())

    def RemovePlayerById(self, eosId : str):
        with self._lock:
            if eosId in self._players:
                del self._players[eosId]
