import datetime
import re

# Every Squad log line starts with [2023.08.13-17.42.27:880][ 42]
LINE_PREFIX = r"^\[(?P<time>[0-9.:-]+)\]\[(?P<chainId>[ 0-9]*)\]"

POSSESS_PATTERN = re.compile(LINE_PREFIX + r"LogSquadTrace: \[DedicatedServer\](?:ASQPlayerController::)?OnPossess\(\): "
                             r"PC=(?P<name>.+) \(Online IDs:(?P<ids>[^)]+)\) Pawn=(?P<pawn>[A-Za-z0-9_]+)_C")
UNPOSSESS_PATTERN = re.compile(LINE_PREFIX + r"LogSquadTrace: \[DedicatedServer\](?:ASQPlayerController::)?OnUnPossess\(\): "
                               r"PC=(?P<name>.+) \(Online IDs:(?P<ids>[^)]+)\)")
CONNECTED_PATTERN = re.compile(LINE_PREFIX + r"LogSquad: PostLogin: NewPlayer: BP_PlayerController_C .+PersistentLevel\.(?P<controller>[^\s]+) "
                               r"\(IP: (?P<ip>[\d.]+) \| Online IDs:(?P<ids>[^)|]+)\)")
DISCONNECTED_PATTERN = re.compile(LINE_PREFIX + r"LogNet: UChannel::Close: Sending CloseBunch\. .+RemoteAddr: (?P<ip>[\d.]+):[\d]+, "
                                  r".+PC: (?P<controller>[^ ]+PlayerController_C_[0-9]+), .+UniqueId: RedpointEOS:(?P<eos>[\da-fA-F]+)")
NEW_GAME_PATTERN = re.compile(LINE_PREFIX + r"LogWorld: Bringing World \/(?P<dlc>[A-Za-z]+)\/(?:Maps\/)?(?P<level>[A-Za-z0-9-]+)\/(?:.+\/)?(?P<layer>[A-Za-z0-9_-]+)(?:\.[A-Za-z0-9_-]+)")
ROUND_ENDED_PATTERN = re.compile(LINE_PREFIX + r"LogGameState: Match State Changed from InProgress to WaitingPostMatch")

# RCON pushes chat without the log prefix
CHAT_PATTERN = re.compile(r"^\[(?P<chat>ChatAll|ChatTeam|ChatSquad|ChatAdmin)\] \[Online IDs:(?P<ids>[^\]]+)\] (?P<name>.+?) : (?P<message>.*)$")
LIST_PLAYERS_PATTERN = re.compile(r"^ID: (?P<id>[0-9]+) \| Online IDs:(?P<ids>[^|]+)\| Name: (?P<name>.+?) \| Team ID: (?P<team>[0-9]+|N/A)")
ONLINE_ID_PATTERN = re.compile(r"(?P<platform>[A-Za-z]+): (?P<value>[^\s]+)")

TRANSITION_LEVEL = "TransitionMap"
LOG_TIME_FORMAT = "%Y.%m.%d-%H.%M.%S:%f"

class LogMessage():
    def __init__(self, content : str, isStartup : bool = False):
        self.content = content
        self.isStartup = isStartup

    def __repr__(self):
        return f"LogMessage({self.content!r}, startup={self.isStartup})"

def ParseLogTime(text : str) -> int:
    """Squad writes log times in UTC, returns milliseconds since epoch or None when unparsable."""
    try:
        stamp = datetime.datetime.strptime(text, LOG_TIME_FORMAT)
    except ValueError:
        return None
    return int(stamp.replace(tzinfo=datetime.timezone.utc).timestamp() * 1000)

def ParseOnlineIds(text : str) -> dict:
    ids = {}
    for match in ONLINE_ID_PATTERN.finditer(text):
        platform = match.group("platform").lower()
        value = match.group("value")
        if platform == "eos":
            value = value.lower()
        ids[platform] = value
    return ids

def ParseListPlayers(response : str) -> list[dict]:
    players = []
    if response == None:
        return players
    for line in response.splitlines():
        match = LIST_PLAYERS_PATTERN.match(line.strip())
        if match == None:
            continue
        ids = ParseOnlineIds(match.group("ids"))
        if "eos" not in ids:
            continue
        players.append({"id" : int(match.group("id")), "eos" : ids["eos"], "steam" : ids.get("steam", ""), "name" : match.group("name")})
    return players
