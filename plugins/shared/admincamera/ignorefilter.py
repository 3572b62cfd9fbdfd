import logging
import re
import lib.shared.config as config
import lib.shared.player as player

Log = logging.getLogger(__name__)

EOS_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
STEAM_ID_PATTERN = re.compile(r"^\d{17}$")

KEY_ENABLED = "enableIgnoreList"
KEY_EOS_IDS = "ignoredEOSIDs"
KEY_STEAM_IDS = "ignoredSteamIDs"

class IgnoreFilter():
    """
    Admins whose EOS or Steam id is listed get tracked but never broadcast.
    Lists are read from the live config on each call, so edits made by
    the ignore commands apply right away.
    """
    def __init__(self, cfg : config.Config):
        self._config = cfg

    def IsEnabled(self) -> bool:
        return bool(self._config.GetValue(KEY_ENABLED, False))

    def _Lists(self) -> tuple[list, list]:
        return self._config.GetValue(KEY_EOS_IDS, []) or [], self._config.GetValue(KEY_STEAM_IDS, []) or []

    def IsIgnored(self, admin : player.Player) -> bool:
        if not self.IsEnabled():
            return False
        eosIds, steamIds = self._Lists()
        for identity in admin.GetIdentities():
            if identity in eosIds or identity in steamIds:
                return True
        return False

    def IsEmpty(self) -> bool:
        eosIds, steamIds = self._Lists()
        return len(eosIds) == 0 and len(steamIds) == 0

    @staticmethod
    def ListKeyFor(identity : str) -> str:
        if STEAM_ID_PATTERN.match(identity):
            return KEY_STEAM_IDS
        elif EOS_ID_PATTERN.match(identity.lower()):
            return KEY_EOS_IDS
        return None

    def Add(self, identity : str) -> bool:
        key = self.ListKeyFor(identity)
        if key == None:
            Log.warning(f"'{identity}' is neither an EOS nor a Steam id, not adding to ignore list")
            return False
        if key == KEY_EOS_IDS:
            identity = identity.lower()
        current = list(self._config.GetValue(key, []) or [])
        if identity in current:
            return False
        current.append(identity)
        self._config.SetValue(key, current)
        Log.info(f"Added {identity} to {key}")
        return True

    def Remove(self, identity : str) -> bool:
        removed = False
        for key in (KEY_EOS_IDS, KEY_STEAM_IDS):
            current = list(self._config.GetValue(key, []) or [])
            for candidate in (identity, identity.lower()):
                if candidate in current:
                    current.remove(candidate)
                    self._config.SetValue(key, current)
                    Log.info(f"Removed {candidate} from {key}")
                    removed = True
                    break
        return removed
