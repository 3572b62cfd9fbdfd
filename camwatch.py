# platform imports
import os
import time
import traceback
import logging
import argparse
import signal
import sys

Server = None

def Sighandler(signum, frame):
    if signum == signal.SIGINT or signum == signal.SIGTERM:
        global Server
        if Server != None:
            Server.Stop()

Argparser = argparse.ArgumentParser(prog="Camwatch", description="Python platform for Squad server admin camera monitoring")
Argparser.add_argument("-d", "--debug", action="store_true")
Argparser.add_argument("-lf", "--logfile", default="")
Argparser.add_argument("-c", "--config", default=None)

Log = logging.getLogger(__name__)

# custom imports
import lib.shared.adminlist as adminlist
import lib.shared.config as config
import lib.shared.player as player
import lib.shared.playermanager as playermanager
import lib.shared.pswd as pswd
import lib.shared.rcon as rcon
import lib.shared.serverdata as serverdata
import camwatchEvent
import camwatchinterface
import logMessage
import plugin

CONFIG_DEFAULT_PATH = os.path.join(os.getcwd(), "camwatchCfg.json")
CONFIG_FALLBACK = \
"""{
    "Name":"Squad Camwatch",
    "Remote":
    {
        "address":
        {
            "ip":"127.0.0.1",
            "port":21114
        },
        "password":"rconPassword"
    },

    "SquadPath":"your/path/here/",
    "logFilename":"SquadGame/Saved/Logs/SquadGame.log",
    "logReadDelay":0.1,
    "adminsFile":"SquadGame/ServerConfig/Admins.cfg",
    "serverProcessName":"SquadGameServer.exe",
    "replayHistory":true,
    "logicDelay":0.016,

    "paths":
    [
        "./"
    ],

    "Plugins":
    [
        {
            "path":"plugins.shared.admincamera.admincamera"
        }
    ]
}
"""

WD_EVENTS = \
{
    "wd_unavailable" : camwatchEvent.CAMWATCH_EVENT_TYPE_WD_UNAVAILABLE,
    "wd_existing" : camwatchEvent.CAMWATCH_EVENT_TYPE_WD_EXISTING,
    "wd_started" : camwatchEvent.CAMWATCH_EVENT_TYPE_WD_STARTED,
    "wd_died" : camwatchEvent.CAMWATCH_EVENT_TYPE_WD_DIED,
    "wd_restarted" : camwatchEvent.CAMWATCH_EVENT_TYPE_WD_RESTARTED,
}


class SquadServer:

    STATUS_SERVER_JUST_AN_ERROR = -6
    STATUS_SERVER_NOT_RUNNING = -5
    STATUS_PLUGIN_ERROR = -4
    STATUS_RCON_ERROR = -2
    STATUS_CONFIG_ERROR = -1
    STATUS_INIT = 0
    STATUS_RUNNING = 1
    STATUS_FINISHING = 2
    STATUS_FINISHED = 3
    STATUS_STOPPING = 4
    STATUS_STOPPED = 5

    @staticmethod
    def StatusString(statusId):
        if statusId == SquadServer.STATUS_INIT:
            return "Status : Initialized Ok."
        elif statusId == SquadServer.STATUS_CONFIG_ERROR:
            return "Status : Error at configuration load."
        elif statusId == SquadServer.STATUS_RCON_ERROR:
            return "Status : Unable to open the server interface."
        elif statusId == SquadServer.STATUS_PLUGIN_ERROR:
            return "Status : Error at plugin load."
        elif statusId == SquadServer.STATUS_SERVER_NOT_RUNNING:
            return "Status : Squad server process is not running."
        else:
            return "Status : Unknown error."

    def ValidateConfig(self, cfg : config.Config) -> bool:
        if cfg == None:
            return False
        curVar = cfg.GetValue("SquadPath", None)
        if curVar == None or curVar == "your/path/here/":
            Log.error("SquadPath is not configured.")
            return False
        curVar = cfg.GetValue("Remote", None)
        if not isinstance(curVar, dict) or "address" not in curVar or "password" not in curVar:
            Log.error("Remote section must contain address and password.")
            return False
        curVar = cfg.GetValue("logicDelay", None)
        if not isinstance(curVar, (int, float)) or curVar <= 0:
            Log.error("logicDelay must be a positive number of seconds.")
            return False
        curVar = cfg.GetValue("Plugins", None)
        if not isinstance(curVar, list):
            Log.error("Plugins must be a list.")
            return False
        return True

    def GetStatus(self):
        return self._status

    def __init__(self, args, cfgPath : str = CONFIG_DEFAULT_PATH, svInterface : camwatchinterface.IServerInterface = None):
        self._args = args
        self._isFinished = False
        self._isRunning = False
        self._pluginManager = None
        self._svInterface = None

        startTime = time.time()
        self._status = SquadServer.STATUS_INIT
        Log.info("Initializing Camwatch...")
        # Config load first
        self._config = config.Config.from_file(cfgPath, CONFIG_FALLBACK)
        if self._config == None:
            self._status = SquadServer.STATUS_CONFIG_ERROR
            return

        if not self.ValidateConfig(self._config):
            self._status = SquadServer.STATUS_CONFIG_ERROR
            return

        for path in self._config.GetValue("paths", []):
            sys.path.append(os.path.normpath(path))

        Log.debug("System path total %s", str(sys.path))

        squadPath = self._config.cfg["SquadPath"]
        if svInterface == None:
            remote = self._config.cfg["Remote"]
            svInterface = camwatchinterface.RconInterface(remote["address"]["ip"],
                                                          remote["address"]["port"],
                                                          remote["password"],
                                                          os.path.join(squadPath, self._config.GetValue("logFilename", "SquadGame/Saved/Logs/SquadGame.log")),
                                                          self._config.GetValue("logReadDelay", 0.1),
                                                          procName = self._config.GetValue("serverProcessName", "SquadGameServer.exe"),
                                                          replayHistory = self._config.GetValue("replayHistory", True))
        self._svInterface = svInterface

        if not self._svInterface.Open():
            Log.error("Unable to Open server interface.")
            self._status = SquadServer.STATUS_RCON_ERROR
            return

        # Admins
        adminsPath = os.path.join(squadPath, self._config.GetValue("adminsFile", "SquadGame/ServerConfig/Admins.cfg"))
        admins = adminlist.AdminList.FromFile(adminsPath)

        # Player management
        self._playerManager = playermanager.PlayerManager()

        # Server data handling
        exportAPI = serverdata.API()
        exportAPI.GetPlayerCount            = self.API_GetPlayerCount
        exportAPI.GetPlayerById             = self.API_GetPlayerById
        exportAPI.GetAdminsWithPermission   = self.API_GetAdminsWithPermission
        exportAPI.IsAdmin                   = self.API_IsAdmin
        self._serverData = serverdata.ServerData(exportAPI, self._svInterface, self._args, admins)
        self._serverData.name = self._config.GetValue("Name", "Squad Server")

        # Plugins
        self._pluginManager = plugin.PluginManager()
        result = self._pluginManager.Initialize(self._config.cfg["Plugins"], self._serverData)
        if not result:
            self._status = SquadServer.STATUS_PLUGIN_ERROR
            return
        self._logicDelayS = self._config.cfg["logicDelay"]

        self._handlers = \
        [
            (logMessage.POSSESS_PATTERN, self.OnPossess),
            (logMessage.UNPOSSESS_PATTERN, self.OnUnPossess),
            (logMessage.CONNECTED_PATTERN, self.OnPlayerConnected),
            (logMessage.DISCONNECTED_PATTERN, self.OnPlayerDisconnected),
            (logMessage.NEW_GAME_PATTERN, self.OnNewGame),
            (logMessage.ROUND_ENDED_PATTERN, self.OnRoundEnded),
            (logMessage.CHAT_PATTERN, self.OnChatMessage),
        ]

        Log.info("Camwatch initialized in %.2f seconds!\n" % (time.time() - startTime))

    def Finish(self):
        if not self._isFinished:
            Log.info("Finishing Camwatch...")
            self._status = SquadServer.STATUS_FINISHING
            self.Stop()
            if self._pluginManager is not None:
                self._pluginManager.Finish()
            self._status = SquadServer.STATUS_FINISHED
            self._isFinished = True
            Log.info("Finished Camwatch.")

    def _FetchPlayers(self):
        try:
            response = self._svInterface.ListPlayers()
        except rcon.RconError as e:
            Log.warning("Unable to fetch the player list : %s", str(e))
            return
        for entry in logMessage.ParseListPlayers(response):
            existing = self._playerManager.GetPlayerById(entry["eos"])
            if existing == None:
                self._playerManager.AddPlayer(player.Player(entry["eos"], entry["name"], entry["steam"]))
            else:
                existing.Update({"name" : entry["name"], "steam" : entry["steam"]})
        Log.info("Players online : %d", self._playerManager.GetPlayerCount())

    def Start(self):
        try:
            procName = self._config.GetValue("serverProcessName", "SquadGameServer.exe")
            if not pswd.IsRunning(procName):
                self._status = SquadServer.STATUS_SERVER_NOT_RUNNING
                if not self._args.debug:
                    Log.error("Server is not running, start the server first, terminating...")
                    return
                else:
                    Log.debug("Running in debug mode and server is offline, consider server data invalid.")

            self._FetchPlayers()

            if not self._pluginManager.Start():
                return
            self._isRunning = True
            self._status = SquadServer.STATUS_RUNNING
            while self._isRunning:
                startTime = time.time()
                self.Loop()
                elapsed = time.time() - startTime
                sleepTime = self._logicDelayS - elapsed
                if sleepTime <= 0:
                    sleepTime = 0
                time.sleep(sleepTime)

        except KeyboardInterrupt:
            signal.signal(signal.SIGINT, signal.SIG_IGN)
            Log.info("Interrupt recieved.")
            self.Stop()

    def Stop(self):
        if self._isRunning:
            Log.info("Stopping Camwatch...")
            self._status = SquadServer.STATUS_STOPPING
            self._pluginManager.Event(camwatchEvent.ShutdownEvent())
            self._svInterface.Close()
            self._isRunning = False
            self._status = SquadServer.STATUS_STOPPED
            Log.info("Stopped.")

    def Loop(self):
        messages = self._svInterface.GetMessages()
        while not messages.empty():
            message = messages.get()
            self._ParseMessage(message)
        self._pluginManager.Loop()

    def _ParseMessage(self, message : logMessage.LogMessage):
        line = message.content

        if line.startswith("wd_"):
            if line in WD_EVENTS:
                self._pluginManager.Event(camwatchEvent.Event(WD_EVENTS[line], None))
            return

        for pattern, handler in self._handlers:
            match = pattern.match(line)
            if match != None:
                handler(match, message)
                return

    def _Timestamp(self, match) -> int:
        if "time" in match.groupdict():
            return logMessage.ParseLogTime(match.group("time"))
        return None

    def _GetOrCreatePlayer(self, ids : dict, name : str = "") -> player.Player:
        eos = ids.get("eos")
        if eos == None:
            return None
        pl = self._playerManager.GetPlayerById(eos)
        if pl == None:
            pl = player.Player(eos, name, ids.get("steam", ""))
            self._playerManager.AddPlayer(pl)
        else:
            pl.Update({"name" : name, "steam" : ids.get("steam", "")})
        return pl

    def OnPossess(self, match, message : logMessage.LogMessage):
        pl = self._GetOrCreatePlayer(logMessage.ParseOnlineIds(match.group("ids")), match.group("name"))
        if pl == None:
            Log.debug("Possess line without an EOS id : %s", message.content)
            return
        wasInCamera = pl.IsInCamera()
        pl.Update({"pawn" : match.group("pawn")})
        if pl.IsInCamera() and not wasInCamera:
            self._pluginManager.Event(camwatchEvent.AdminCameraEvent(camwatchEvent.CAMWATCH_EVENT_TYPE_POSSESSED_ADMIN_CAMERA, pl,
                                      {"messageRaw" : message.content}, self._Timestamp(match), message.isStartup))
        elif wasInCamera and not pl.IsInCamera():
            # went straight from the camera into another pawn
            self._pluginManager.Event(camwatchEvent.AdminCameraEvent(camwatchEvent.CAMWATCH_EVENT_TYPE_UNPOSSESSED_ADMIN_CAMERA, pl,
                                      {"messageRaw" : message.content}, self._Timestamp(match), message.isStartup))

    def OnUnPossess(self, match, message : logMessage.LogMessage):
        pl = self._GetOrCreatePlayer(logMessage.ParseOnlineIds(match.group("ids")), match.group("name"))
        if pl == None:
            return
        wasInCamera = pl.IsInCamera()
        pl.Update({"pawn" : ""})
        if wasInCamera:
            self._pluginManager.Event(camwatchEvent.AdminCameraEvent(camwatchEvent.CAMWATCH_EVENT_TYPE_UNPOSSESSED_ADMIN_CAMERA, pl,
                                      {"messageRaw" : message.content}, self._Timestamp(match), message.isStartup))

    def OnPlayerConnected(self, match, message : logMessage.LogMessage):
        ids = logMessage.ParseOnlineIds(match.group("ids"))
        pl = self._GetOrCreatePlayer(ids)
        if pl == None:
            return
        pl.Update({"controller" : match.group("controller")})
        Log.debug("Player connected %s", pl)
        self._pluginManager.Event(camwatchEvent.PlayerConnectedEvent(pl, {"messageRaw" : message.content},
                                  self._Timestamp(match), message.isStartup))

    def OnPlayerDisconnected(self, match, message : logMessage.LogMessage):
        pl = self._playerManager.GetPlayerById(match.group("eos").lower())
        if pl == None:
            pl = self._playerManager.GetPlayerByController(match.group("controller"))
        if pl == None:
            Log.debug("Disconnect of an unknown player : %s", message.content)
            return
        Log.debug("Player disconnected %s", pl)
        self._pluginManager.Event(camwatchEvent.PlayerDisconnectedEvent(pl, {"messageRaw" : message.content},
                                  self._Timestamp(match), message.isStartup))
        self._playerManager.RemovePlayer(pl) # make sure its removed AFTER events are processed by plugins

    def OnNewGame(self, match, message : logMessage.LogMessage):
        if match.group("level") == logMessage.TRANSITION_LEVEL:
            return
        layer = match.group("layer")
        Log.info("New game started on %s", layer)
        self._serverData.layer = layer
        for pl in self._playerManager.GetAllPlayers():
            pl.Update({"pawn" : ""})
        self._pluginManager.Event(camwatchEvent.NewGameEvent(layer, {"level" : match.group("level"), "messageRaw" : message.content},
                                  self._Timestamp(match), message.isStartup))

    def OnRoundEnded(self, match, message : logMessage.LogMessage):
        self._pluginManager.Event(camwatchEvent.RoundEndedEvent({"messageRaw" : message.content},
                                  self._Timestamp(match), message.isStartup))

    def OnChatMessage(self, match, message : logMessage.LogMessage):
        pl = self._GetOrCreatePlayer(logMessage.ParseOnlineIds(match.group("ids")), match.group("name"))
        Log.debug("Chat message %s, from player %s" % (message.content, str(pl)))
        self._pluginManager.Event(camwatchEvent.ChatMessageEvent(pl, match.group("message"), match.group("chat"),
                                  {"messageRaw" : message.content}, isStartup = message.isStartup))

    def API_GetPlayerCount(self):
        return self._playerManager.GetPlayerCount()

    def API_GetPlayerById(self, eosId):
        return self._playerManager.GetPlayerById(eosId)

    def API_GetAdminsWithPermission(self, permission : str) -> list[player.Player]:
        admins = self._serverData.admins
        return [pl for pl in self._playerManager.GetAllPlayers() if admins.HasPermission(pl.GetIdentities(), permission)]

    def API_IsAdmin(self, pl : player.Player) -> bool:
        return pl != None and self._serverData.admins.IsAdmin(pl.GetIdentities())


def InitLogger(args):
    loggingMode = logging.INFO
    loggingFile = ""

    if args.debug:
        print("DEBUGGING MODE.")
        loggingMode = logging.DEBUG
    if args.logfile:
        # Add timestamp to log file so they don't get overwritten
        if os.path.exists(args.logfile):
            args.logfile = args.logfile + '-' + time.strftime("%m%d%Y_%H%M%S", time.localtime(time.time()))
        print(f"Logging into file {args.logfile}")
        loggingFile = args.logfile

    if loggingFile != "":
        logging.basicConfig(
        filename = loggingFile,
        level = loggingMode,
        filemode = 'a',
        format='%(asctime)s %(levelname)08s %(name)s %(message)s',
        )
    else:
        logging.basicConfig(
        level = loggingMode,
        format='%(asctime)s %(levelname)08s %(name)s %(message)s',
        )

def main(argv = None):
    args = Argparser.parse_args(argv)
    InitLogger(args)
    signal.signal(signal.SIGINT, Sighandler)
    signal.signal(signal.SIGTERM, Sighandler)
    Log.info("Camwatch entry point.")
    global Server
    Server = SquadServer(args, args.config if args.config else CONFIG_DEFAULT_PATH)
    int_status = Server.GetStatus()
    if int_status == SquadServer.STATUS_INIT:
        try:
            Server.Start()  # it will exit the Start on user shutdown
        except Exception as e:
            Log.error(f"ERROR occurred: Type: {type(e)}; Reason: {e}; Traceback: {traceback.format_exc()}")
        int_status = Server.GetStatus()
        if int_status == SquadServer.STATUS_SERVER_NOT_RUNNING:
            print("Unable to start with not running server for safety measures, abort init.")
        Server.Finish()
    else:
        Log.info("Camwatch initialize error %s" % (SquadServer.StatusString(int_status)))
    Server = None


if __name__ == "__main__":
    main()
