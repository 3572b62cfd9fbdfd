import lib.shared.player as player
import lib.shared.timeout as timeout

CAMWATCH_EVENT_TYPE_CHAT_MESSAGE                = 1 # ChatMessageEvent : player : player.Player or None, message : str, chat : str channel name ( ChatAll, ChatTeam, ChatSquad, ChatAdmin )
CAMWATCH_EVENT_TYPE_NEW_GAME                    = 2 # NewGameEvent : layer : str, data["level"] : level folder, fired when the server brings up a new world
CAMWATCH_EVENT_TYPE_SHUTDOWN                    = 3 # No need for own class, uses Event, fired once when the platform is stopping
CAMWATCH_EVENT_TYPE_PLAYER_CONNECTED            = 4 # PlayerConnectedEvent : player = player instance, created and managed by the platform before plugins call
CAMWATCH_EVENT_TYPE_PLAYER_DISCONNECTED         = 5 # PlayerDisconnectedEvent : player = player instance, removed after all plugins finish with this kind of event
CAMWATCH_EVENT_TYPE_ROUND_ENDED                 = 6 # No need for own class, uses Event, match state went from InProgress to WaitingPostMatch
CAMWATCH_EVENT_TYPE_POSSESSED_ADMIN_CAMERA      = 7 # AdminCameraEvent : player possessed the admin camera pawn
CAMWATCH_EVENT_TYPE_UNPOSSESSED_ADMIN_CAMERA    = 8 # AdminCameraEvent : player left the admin camera pawn

CAMWATCH_EVENT_TYPE_WD_UNAVAILABLE      = 1000 # watchdog raised event, game process is not active, happens only upon startup
CAMWATCH_EVENT_TYPE_WD_EXISTING         = 1001 # watchdog raised event, game process is running upon startup
CAMWATCH_EVENT_TYPE_WD_DIED             = 1002 # watchdog raised event, game process has died during watch
CAMWATCH_EVENT_TYPE_WD_STARTED          = 1003 # watchdog raised event, game process has started during watch
CAMWATCH_EVENT_TYPE_WD_RESTARTED        = 1004 # watchdog raised event, game process has restarted after dying during watch

class Event():
    # timestamp is in milliseconds, taken from the log line when there is one
    def __init__(self, type : int, data : dict, timestamp : int = None, isStartup = False):
        self.type = type
        self.data = data if data != None else {}
        self.timestamp = timestamp if timestamp != None else timeout.NowMs()
        self.isStartup = isStartup

class ChatMessageEvent(Event):
    def __init__(self, pl : player.Player, message : str, chat : str, data : dict, timestamp : int = None, isStartup = False):
        self.player = pl
        self.message = message
        self.chat = chat
        super().__init__(CAMWATCH_EVENT_TYPE_CHAT_MESSAGE, data, timestamp, isStartup)

class NewGameEvent(Event):
    def __init__(self, layer : str, data : dict, timestamp : int = None, isStartup = False):
        self.layer = layer
        super().__init__(CAMWATCH_EVENT_TYPE_NEW_GAME, data, timestamp, isStartup)

class RoundEndedEvent(Event):
    def __init__(self, data : dict, timestamp : int = None, isStartup = False):
        super().__init__(CAMWATCH_EVENT_TYPE_ROUND_ENDED, data, timestamp, isStartup)

class PlayerConnectedEvent(Event):
    def __init__(self, pl : player.Player, data : dict, timestamp : int = None, isStartup = False):
        self.player = pl
        super().__init__(CAMWATCH_EVENT_TYPE_PLAYER_CONNECTED, data, timestamp, isStartup)

class PlayerDisconnectedEvent(Event):
    def __init__(self, pl : player.Player, data : dict, timestamp : int = None, isStartup = False):
        self.player = pl
        super().__init__(CAMWATCH_EVENT_TYPE_PLAYER_DISCONNECTED, data, timestamp, isStartup)

class AdminCameraEvent(Event):
    def __init__(self, type : int, pl : player.Player, data : dict, timestamp : int = None, isStartup = False):
        self.player = pl
        super().__init__(type, data, timestamp, isStartup)

class ShutdownEvent(Event):
    def __init__(self, data : dict = None, isStartup = False):
        super().__init__(CAMWATCH_EVENT_TYPE_SHUTDOWN, data, None, isStartup)
