import logging

log = logging.getLogger(__name__)

CAMERA_PAWN_MARKER = "CameraMan"

class Player(object):
    def __init__(self, eosId : str, name : str = "", steamId : str = ""):
        self._id = eosId
        self._name = name
        self._steamId = steamId
        self._controller = ""
        self._pawn = ""

    def GetId(self) -> str:
        return self._id

    def GetName(self) -> str:
        if self._name == "":
            return self._id
        return self._name

    def GetSteamId(self) -> str:
        return self._steamId

    def GetController(self) -> str:
        return self._controller

    def IsInCamera(self) -> bool:
        return CAMERA_PAWN_MARKER in self._pawn

    def GetIdentities(self) -> list[str]:
        return [i for i in (self._id, self._steamId) if i]

    def __eq__(self, other):
        if not isinstance(other, Player):
            return NotImplemented
        return self._id == other._id

    def __hash__(self):
        return hash(self._id)

    def __repr__(self):
        s = f"{self.GetName()} (EOS : {self._id}) (Steam : {self._steamId})"
        return s

    """
    Update keys:
    name - player name as shown by the controller
    steam - steam id
    controller - player controller object name
    pawn - class name of the currently possessed pawn, empty when unpossessed
    """

    def Update(self, data : dict) -> dict:
        changedOld = {}
        if "name" in data and data["name"] and self._name != data["name"]:
            changedOld["name"] = self._name
            self._name = data["name"]
        if "steam" in data and data["steam"] and self._steamId != data["steam"]:
            changedOld["steam"] = self._steamId
            self._steamId = data["steam"]
        if "controller" in data and data["controller"] and self._controller != data["controller"]:
            changedOld["controller"] = self._controller
            self._controller = data["controller"]
        if "pawn" in data and self._pawn != data["pawn"]:
            changedOld["pawn"] = self._pawn
            self._pawn = data["pawn"]
            log.debug(f"Player {self} now possesses pawn '{self._pawn}'")
        return changedOld
