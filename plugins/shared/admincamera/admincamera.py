import datetime
import json
import logging
import os
import camwatchEvent
import plugin
import lib.shared.config as config
import lib.shared.player as player
import lib.shared.scheduler as scheduler
import plugins.shared.admincamera.discordsender as discordsender
import plugins.shared.admincamera.formatting as formatting
import plugins.shared.admincamera.ignorefilter as ignorefilter
import plugins.shared.admincamera.notifier as notifier
import plugins.shared.admincamera.reconciler as reconciler
import plugins.shared.admincamera.sessiontracker as sessiontracker
from lib.shared.serverdata import ServerData

Log = logging.getLogger(__name__)

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "admincameraCfg.json")
ENV_PATH = os.path.join(os.path.dirname(__file__), "admincamera.env")

DEFAULT_CONFIG = {
    # Discord integration
    "channelID" : "default",
    "adminRoleID" : "default",
    "discordWebhookURL" : "",
    "serverName" : "",

    # In-game warnings
    "enableInGameWarnings" : True,
    "enableDiscordNotifications" : True,
    "adminPermission" : "canseeadminchat",
    "warnOnlyAdminsInCamera" : False,

    # Messages, {admin} {count} {duration} are substituted
    "enterMessage" : "🚨 {admin} entered admin camera. Active admins: {count}",
    "leaveMessage" : "✅ {admin} left admin camera. Active admins: {count}",
    "includeDuration" : True,
    "durationMessage" : "✅ {admin} left admin camera after {duration}. Active admins: {count}",
    "orphanMessage" : "⚠️ {admin} disconnected while in admin camera, session closed after {duration}. Active admins: {count}",

    # Confirmation messages
    "enableConfirmationMessages" : True,
    "enterConfirmation" : "You entered admin camera. Active admins: {count}",
    "leaveConfirmation" : "You left admin camera. Active admins: {count}",
    "leaveConfirmationWithDuration" : "You left admin camera after {duration}. Active admins: {count}",
    "ignoredConfirmation" : "Admin camera use tracked silently, nobody was notified. Active admins: {count}",

    # Cooldown
    "enableCooldown" : True,
    "cooldownSeconds" : 30,

    # Sessions
    "enableDiscordSessionSummary" : False,
    "notifyOnFirstEntry" : True,
    "notifyOnLastExit" : True,
    "firstEntryMessage" : "🚨 ADMIN CAMERA ACTIVATED - {admin} is now monitoring",
    "lastExitMessage" : "✅ ADMIN CAMERA DEACTIVATED - No admins currently monitoring",

    # Disconnects
    "enableDisconnectTracking" : True,
    "disconnectTimeoutSeconds" : 60,

    # Ignore list
    "enableIgnoreList" : False,
    "ignoredEOSIDs" : [],
    "ignoredSteamIDs" : [],

    # Embed colors
    "enterColor" : 16711680,
    "leaveColor" : 65280,
    "summaryColor" : 16776960,
    "orphanColor" : 16753920,
}

CONFIG_FALLBACK = json.dumps(DEFAULT_CONFIG, indent=4, ensure_ascii=False)

NO_PERMISSION_MESSAGE = "You need admin permissions to use this command."

def FindConfigPath() -> str:
    """A YAML config next to the JSON one takes precedence."""
    for ext in (".yaml", ".yml"):
        yamlPath = os.path.splitext(CONFIG_PATH)[0] + ext
        if os.path.exists(yamlPath):
            return yamlPath
    return CONFIG_PATH

def ValidateConfig(cfg : config.Config) -> list[str]:
    """Fixes what can be fixed and returns the warnings, never fatal."""
    warnings = []
    hasChannel = discordsender.IsConfigured(cfg.GetValue("channelID", None))
    hasWebhook = discordsender.IsConfigured(cfg.GetValue("discordWebhookURL", None))
    if not hasChannel and not hasWebhook:
        warnings.append("Discord channel ID not configured. Discord notifications will be disabled.")
        cfg.SetValue("enableDiscordNotifications", False)
        cfg.SetValue("enableDiscordSessionSummary", False)

    if not discordsender.IsConfigured(cfg.GetValue("adminRoleID", None)):
        warnings.append("Discord admin role ID not configured. Role pings will be disabled.")

    if cfg.GetValue("enableIgnoreList", False) and ignorefilter.IgnoreFilter(cfg).IsEmpty():
        warnings.append("Ignore list is enabled but both ignoredEOSIDs and ignoredSteamIDs are empty.")

    for key in ("cooldownSeconds", "disconnectTimeoutSeconds"):
        value = cfg.GetValue(key, DEFAULT_CONFIG[key])
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            warnings.append(f"{key} must be a non-negative number, got {value!r}. Using {DEFAULT_CONFIG[key]}.")
            cfg.SetValue(key, DEFAULT_CONFIG[key])

    for w in warnings:
        Log.warning(w)
    return warnings


class AdminCameraPlugin():
    def __init__(self, serverData : ServerData, cfg : config.Config, discord : discordsender.DiscordSender = None,
                 sched : scheduler.Scheduler = None):
        self._serverData = serverData
        self._config = cfg
        self._scheduler = sched if sched != None else scheduler.Scheduler()
        self._ignoreFilter = ignorefilter.IgnoreFilter(cfg)
        self._tracker = sessiontracker.SessionTracker(self._scheduler, self._ignoreFilter, self._GetCooldownMs(), self.OnOrphanClosed)
        self._discord = discord
        self._notifier = notifier.Notifier(cfg, serverData.interface, discord, self.GetEligibleAdmins)
        self._muteOrphanNotices = False
        self._commands = \
        {
            "camerastats" : self.HandleStats,
            "cameradebug" : self.HandleDebug,
            "cameratest" : self.HandleTest,
            "cameraignore" : self.HandleIgnore,
            "cameraunignore" : self.HandleUnignore,
        }

    def _GetCooldownMs(self) -> int:
        if not self._config.GetValue("enableCooldown", True):
            return 0
        return int(self._config.GetValue("cooldownSeconds", 30) * 1000)

    def _GetDisconnectTimeoutMs(self) -> int:
        return int(self._config.GetValue("disconnectTimeoutSeconds", 60) * 1000)

    def GetTracker(self) -> sessiontracker.SessionTracker:
        return self._tracker

    def GetEligibleAdmins(self) -> list[player.Player]:
        if self._config.GetValue("warnOnlyAdminsInCamera", False):
            admins = []
            for session in self._tracker.GetActiveSessions():
                pl = self._serverData.API.GetPlayerById(session.adminId)
                if pl != None:
                    admins.append(pl)
            return admins
        return self._serverData.API.GetAdminsWithPermission(self._config.GetValue("adminPermission", "canseeadminchat"))

    def Start(self) -> bool:
        if self._discord != None:
            self._discord.Start()
        Log.info("Admin camera tracking started, %d players online", self._serverData.API.GetPlayerCount())
        return True

    def Loop(self):
        self._scheduler.Tick()

    def Finish(self):
        if self._discord != None:
            self._discord.Stop()

    def OnCameraEnter(self, pl : player.Player, timestamp : int, isStartup : bool) -> bool:
        result = self._tracker.OnEnter(pl, timestamp)
        if isStartup:
            return False
        if result.ShouldNotify():
            self._notifier.NotifyEnter(pl, result)
        elif result.IsTracked():
            self._notifier.SendStealthNotice(pl, result)
        return False

    def OnCameraLeave(self, pl : player.Player, timestamp : int, isStartup : bool) -> bool:
        result = self._tracker.OnLeave(pl, timestamp)
        if result == None or isStartup:
            return False
        if result.ShouldNotify():
            self._notifier.NotifyLeave(pl, result)
        else:
            self._notifier.SendStealthNotice(pl, result)
        return False

    def OnPlayerDisconnected(self, pl : player.Player, timestamp : int, isStartup : bool) -> bool:
        if not self._config.GetValue("enableDisconnectTracking", True):
            return False
        timeoutMs = self._GetDisconnectTimeoutMs()
        if not self._tracker.OnDisconnect(pl, timestamp, timeoutMs):
            return False
        if isStartup and timestamp + timeoutMs <= self._scheduler.Now():
            # grace period ran out before we were started, close it without telling anyone
            self._muteOrphanNotices = True
            try:
                self._tracker.ReconcileOrphan(pl.GetId(), timestamp + timeoutMs)
            finally:
                self._muteOrphanNotices = False
        return False

    def OnPlayerConnected(self, pl : player.Player) -> bool:
        self._tracker.OnReconnect(pl)
        return False

    def OnOrphanClosed(self, result : sessiontracker.LeaveResult):
        if self._muteOrphanNotices or not result.ShouldNotify():
            return
        self._notifier.NotifyOrphanClosed(result)

    def OnNewGame(self) -> bool:
        self._tracker.ResetForNewMatch()
        return False

    def OnRoundEnded(self, isStartup : bool) -> bool:
        if not isStartup:
            self._notifier.SendSessionSummary(self._tracker)
        return False

    def OnChatMessage(self, pl : player.Player, message : str) -> bool:
        if pl == None or not message.startswith("!"):
            return False
        cmdArgs = message[1:].split()
        if len(cmdArgs) == 0:
            return False
        handler = self._commands.get(cmdArgs[0].lower())
        if handler == None:
            return False
        if not self._serverData.API.IsAdmin(pl):
            self._Reply(pl, NO_PERMISSION_MESSAGE)
            return True
        handler(pl, cmdArgs[1:])
        return True

    def _Reply(self, pl : player.Player, text : str):
        self._notifier.WarnSplit(pl.GetId(), text)

    def _FormatClock(self, ms : int) -> str:
        if ms == None:
            return "N/A"
        return datetime.datetime.fromtimestamp(ms / 1000).strftime("%H:%M:%S")

    def HandleStats(self, pl : player.Player, args : list[str]):
        stats = self._tracker.GetStats()
        now = self._scheduler.Now()
        lines = [
            "=== ADMIN CAMERA STATISTICS ===",
            f"Active Sessions: {self._tracker.GetActiveCount()}",
            f"Total Sessions: {stats.totalSessions}",
            f"Total Time: {formatting.FormatDuration(stats.totalTime)}",
            f"Peak Users: {stats.peakUsers}",
            f"Peak Time: {self._FormatClock(stats.peakTime)}",
            f"Orphaned Sessions: {stats.orphanedSessions}",
            "",
            "=== ACTIVE ADMINS ===",
        ]
        active = self._tracker.GetActiveSessions()
        if len(active) > 0:
            for session in active:
                lines.append(f"{session.displayName} - {formatting.FormatDuration(session.ElapsedMs(now))}")
        else:
            lines.append("No active sessions")
        self._Reply(pl, "\n".join(lines))

    def HandleDebug(self, pl : player.Player, args : list[str]):
        permission = self._config.GetValue("adminPermission", "canseeadminchat")
        lines = [
            "=== ADMIN CAMERA DEBUG ===",
            f"Enable In-Game Warnings: {self._config.GetValue('enableInGameWarnings', True)}",
            f"Enable Discord Notifications: {self._config.GetValue('enableDiscordNotifications', True)}",
            f"Enable Cooldown: {self._config.GetValue('enableCooldown', True)}",
            f"Cooldown Seconds: {self._config.GetValue('cooldownSeconds', 30)}",
            f"Enable Confirmation Messages: {self._config.GetValue('enableConfirmationMessages', True)}",
            f"Disconnect Tracking: {self._config.GetValue('enableDisconnectTracking', True)}",
            f"Ignore List: {self._ignoreFilter.IsEnabled()}",
            "",
            "=== PERMISSIONS ===",
            f"Total Admins: {len(self._serverData.admins.GetAdminsWithPermission(permission))}",
            f"Online Players: {self._serverData.API.GetPlayerCount()}",
            f"Online Admins: {len(self._serverData.API.GetAdminsWithPermission(permission))}",
            "",
            "=== TRACKER ===",
            f"Pending Disconnects: {self._tracker.GetPendingOrphanCount()}",
            f"Cooldown Entries: {self._tracker.GetCooldownCount()}",
            f"Scheduled Tasks: {self._scheduler.GetPendingCount()}",
            f"Your State: {reconciler.STATE_NAMES[self._tracker.GetState(pl.GetId())]}",
        ]
        self._Reply(pl, "\n".join(lines))

    def HandleTest(self, pl : player.Player, args : list[str]):
        testMessage = formatting.FormatTemplate(self._config.GetValue("enterMessage", ""), admin="TestAdmin", count=1)
        self._Reply(pl, f"Testing admin camera warnings: {testMessage}")
        message = formatting.FormatTemplate(self._config.GetValue("enterMessage", ""), admin=pl.GetName(), count=1)
        confirmation = None
        if self._config.GetValue("enableConfirmationMessages", True):
            confirmation = formatting.FormatTemplate(self._config.GetValue("enterConfirmation", ""), count=1)
        self._notifier.WarnAdmins(pl, message, confirmation)
        self._Reply(pl, "Admin camera test completed!")

    def HandleIgnore(self, pl : player.Player, args : list[str]):
        if len(args) == 0:
            self._Reply(pl, "Usage: !cameraignore <EOS or Steam id>")
            return
        identity = args[0]
        if self._ignoreFilter.Add(identity):
            self._config.Save()
            self._Reply(pl, f"{identity} added to the admin camera ignore list.")
            if not self._ignoreFilter.IsEnabled():
                self._Reply(pl, "Note: the ignore list is disabled in the config.")
        else:
            self._Reply(pl, f"{identity} is already ignored or is not a valid EOS or Steam id.")

    def HandleUnignore(self, pl : player.Player, args : list[str]):
        if len(args) == 0:
            self._Reply(pl, "Usage: !cameraunignore <EOS or Steam id>")
            return
        identity = args[0]
        if self._ignoreFilter.Remove(identity):
            self._config.Save()
            self._Reply(pl, f"{identity} removed from the admin camera ignore list.")
        else:
            self._Reply(pl, f"{identity} is not on the admin camera ignore list.")


# Global plugin instance
PluginInstance : AdminCameraPlugin = None
SERVER_DATA = None

def OnInitialize(serverData : ServerData, exports : plugin.ExportTable = None) -> bool:
    global SERVER_DATA, PluginInstance
    SERVER_DATA = serverData

    logMode = logging.INFO
    if serverData.args.debug:
        logMode = logging.DEBUG
    if serverData.args.logfile != "":
        logging.basicConfig(
        filename=serverData.args.logfile,
        level=logMode,
        format='%(asctime)s %(levelname)08s %(name)s %(message)s')
    else:
        logging.basicConfig(
        level=logMode,
        format='%(asctime)s %(levelname)08s %(name)s %(message)s')

    cfg = config.Config.from_file(FindConfigPath(), CONFIG_FALLBACK)
    if cfg == None:
        Log.error("Unable to load admin camera config, aborting plugin load.")
        return False
    if len(cfg.MergeDefaults(DEFAULT_CONFIG)) > 0:
        cfg.Save()
    ValidateConfig(cfg)

    discord = discordsender.DiscordSender(cfg.GetValue("channelID", None),
                                          discordsender.LoadToken(ENV_PATH),
                                          cfg.GetValue("discordWebhookURL", None),
                                          cfg.GetValue("serverName", "") or serverData.name)
    PluginInstance = AdminCameraPlugin(serverData, cfg, discord)

    if exports != None:
        exports.Add("GetSessionTracker", PluginInstance.GetTracker)

    Log.info("Admin camera plugin loaded successfully")
    return True

def OnStart() -> bool:
    return PluginInstance.Start()

# Called each loop tick from the system, fires due disconnect cleanups
def OnLoop():
    PluginInstance.Loop()

def OnFinish():
    PluginInstance.Finish()

def OnEvent(event) -> bool:
    if event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_POSSESSED_ADMIN_CAMERA:
        return PluginInstance.OnCameraEnter(event.player, event.timestamp, event.isStartup)
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_UNPOSSESSED_ADMIN_CAMERA:
        return PluginInstance.OnCameraLeave(event.player, event.timestamp, event.isStartup)
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_PLAYER_DISCONNECTED:
        return PluginInstance.OnPlayerDisconnected(event.player, event.timestamp, event.isStartup)
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_PLAYER_CONNECTED:
        return PluginInstance.OnPlayerConnected(event.player)
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_NEW_GAME:
        return PluginInstance.OnNewGame()
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_ROUND_ENDED:
        return PluginInstance.OnRoundEnded(event.isStartup)
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_CHAT_MESSAGE:
        return PluginInstance.OnChatMessage(event.player, event.message)
    elif event.type == camwatchEvent.CAMWATCH_EVENT_TYPE_SHUTDOWN:
        Log.info("Server shutting down with %d admins in camera", PluginInstance.GetTracker().GetActiveCount())
        return False
    return False
