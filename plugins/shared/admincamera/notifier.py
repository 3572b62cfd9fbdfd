import logging
import traceback
import lib.shared.config as config
import lib.shared.player as player
import plugins.shared.admincamera.formatting as formatting
import plugins.shared.admincamera.sessiontracker as sessiontracker

Log = logging.getLogger(__name__)

TITLE_ENTER         = "📹 Admin Camera Activated"
TITLE_LEAVE         = "📹 Admin Camera Deactivated"
TITLE_FIRST_ENTRY   = "🚨 ADMIN CAMERA ACTIVATED"
TITLE_LAST_EXIT     = "✅ ADMIN CAMERA DEACTIVATED"
TITLE_ORPHAN        = "📹 Admin Camera Session Closed (Disconnect)"
TITLE_SUMMARY       = "📹 Admin Camera Session Summary"

RECENT_SESSIONS_IN_SUMMARY = 5

class Notifier():
    """
    Turns tracker results into in-game AdminWarn messages and Discord embeds.

    Every single send is isolated: a failing warn to one admin or a failing
    Discord post is logged and the remaining sends still go out. Nothing here
    touches tracker state.
    """
    def __init__(self, cfg : config.Config, interface, discord = None, eligibleAdmins = None):
        self._config = cfg
        self._interface = interface
        self._discord = discord
        self._eligibleAdmins = eligibleAdmins if eligibleAdmins != None else (lambda : [])

    def _Opt(self, key : str, default = None):
        return self._config.GetValue(key, default)

    def _DiscordReady(self) -> bool:
        return self._discord != None and self._discord.IsEnabled()

    def _Warn(self, playerId : str, text : str) -> bool:
        try:
            self._interface.Warn(playerId, text)
            return True
        except Exception as ex:
            Log.error("Failed to warn admin %s : %s", playerId, str(ex))
            return False

    def _SendDiscord(self, title : str, description : str = None, color : int = 0, fields : list = None, ping : bool = False) -> bool:
        if not self._DiscordReady():
            Log.debug("Discord is not configured, skipping '%s'", title)
            return False
        try:
            return self._discord.SendEmbed(title, description, color, fields, self._Opt("adminRoleID") if ping else None)
        except Exception as ex:
            Log.error("Error sending Discord notification '%s' : %s\n %s", title, str(ex), traceback.format_exc())
            return False

    def WarnAdmins(self, trigger : player.Player, message : str, confirmation : str) -> int:
        """Warns every eligible admin, the triggering admin gets the confirmation text instead."""
        admins = self._eligibleAdmins()
        if len(admins) == 0:
            Log.info("No admins eligible for admin camera warnings")
        warned = 0
        triggerWarned = False
        for admin in admins:
            text = message
            if trigger != None and admin.GetId() == trigger.GetId():
                triggerWarned = True
                if confirmation != None:
                    text = confirmation
                    Log.debug("Sending confirmation to %s : %s", admin.GetName(), text)
            else:
                Log.debug("Warning admin %s : %s", admin.GetName(), text)
            if self._Warn(admin.GetId(), text):
                warned += 1
        if trigger != None and not triggerWarned and confirmation != None:
            if self._Warn(trigger.GetId(), confirmation):
                warned += 1
        Log.debug("Total admins notified : %d", warned)
        return warned

    def _Confirmation(self, key : str, count : int, duration : str = None) -> str:
        if not self._Opt("enableConfirmationMessages", True):
            return None
        return formatting.FormatTemplate(self._Opt(key, ""), count=count, duration=duration)

    def NotifyEnter(self, admin : player.Player, result : sessiontracker.EnterResult):
        name = admin.GetName()
        if self._Opt("notifyOnFirstEntry", True) and result.isFirstEntry:
            self._SendDiscord(TITLE_FIRST_ENTRY, formatting.FormatTemplate(self._Opt("firstEntryMessage", ""), admin=name),
                              self._Opt("enterColor", 0), ping=True)

        if self._Opt("enableInGameWarnings", True):
            message = formatting.FormatTemplate(self._Opt("enterMessage", ""), admin=name, count=result.activeCount)
            self.WarnAdmins(admin, message, self._Confirmation("enterConfirmation", result.activeCount))

        if self._Opt("enableDiscordNotifications", True):
            self._SendDiscord(TITLE_ENTER, f"**{name}** entered admin camera\n**Active Admins:** {result.activeCount}",
                              self._Opt("enterColor", 0), ping=True)

    def NotifyLeave(self, admin : player.Player, result : sessiontracker.LeaveResult):
        name = admin.GetName()
        session = result.session
        if self._Opt("notifyOnLastExit", True) and result.isLastExit:
            self._SendDiscord(TITLE_LAST_EXIT, formatting.FormatTemplate(self._Opt("lastExitMessage", ""), admin=name),
                              self._Opt("leaveColor", 0), ping=True)

        if self._Opt("enableInGameWarnings", True):
            if self._Opt("includeDuration", True) and session.duration:
                message = formatting.FormatTemplate(self._Opt("durationMessage", ""), admin=name,
                                                    count=result.activeCount, duration=session.duration)
                confirmation = self._Confirmation("leaveConfirmationWithDuration", result.activeCount, session.duration)
            else:
                message = formatting.FormatTemplate(self._Opt("leaveMessage", ""), admin=name, count=result.activeCount)
                confirmation = self._Confirmation("leaveConfirmation", result.activeCount)
            self.WarnAdmins(admin, message, confirmation)

        if self._Opt("enableDiscordNotifications", True):
            if session.duration:
                description = f"**{name}** left admin camera after **{session.duration}**\n**Active Admins:** {result.activeCount}"
            else:
                description = f"**{name}** left admin camera\n**Active Admins:** {result.activeCount}"
            self._SendDiscord(TITLE_LEAVE, description, self._Opt("leaveColor", 0), ping=True)

    def NotifyOrphanClosed(self, result : sessiontracker.LeaveResult):
        session = result.session
        name = session.displayName
        if self._Opt("enableInGameWarnings", True):
            message = formatting.FormatTemplate(self._Opt("orphanMessage", ""), admin=name,
                                                count=result.activeCount, duration=session.duration)
            self.WarnAdmins(None, message, None)

        if self._Opt("enableDiscordNotifications", True):
            self._SendDiscord(TITLE_ORPHAN,
                              f"**{name}** disconnected while in admin camera, session closed after **{session.duration}**\n"
                              f"**Active Admins:** {result.activeCount}",
                              self._Opt("orphanColor", 0), ping=True)

        if self._Opt("notifyOnLastExit", True) and result.isLastExit:
            self._SendDiscord(TITLE_LAST_EXIT, formatting.FormatTemplate(self._Opt("lastExitMessage", ""), admin=name),
                              self._Opt("leaveColor", 0), ping=True)

    def SendStealthNotice(self, admin : player.Player, result) -> bool:
        """Tells an ignore-listed admin that the enter or leave was tracked without anyone being notified."""
        if not self._Opt("enableConfirmationMessages", True):
            return False
        duration = result.session.duration if result.session != None else None
        text = formatting.FormatTemplate(self._Opt("ignoredConfirmation", ""), admin=admin.GetName(),
                                         count=result.activeCount, duration=duration)
        if text == "":
            return False
        return self._Warn(admin.GetId(), text)

    def WarnSplit(self, playerId : str, text : str, maxLength : int = formatting.DEFAULT_WARN_LENGTH) -> int:
        sent = 0
        for chunk in formatting.SplitMessage(text, maxLength):
            if self._Warn(playerId, chunk):
                sent += 1
        return sent

    def BuildSummaryFields(self, tracker : sessiontracker.SessionTracker) -> list[dict]:
        stats = tracker.GetStats()
        fields = []
        fields.append({
            "name" : "📊 Session Statistics",
            "value" : f"**Total Sessions:** {stats.totalSessions}\n"
                      f"**Total Time:** {formatting.FormatDuration(stats.totalTime)}\n"
                      f"**Peak Users:** {stats.peakUsers}\n"
                      f"**Disconnect Cleanups:** {stats.disconnectCleanups}",
            "inline" : True,
        })

        active = tracker.GetActiveSessions()
        if len(active) > 0:
            fields.append({
                "name" : "👥 Currently Active",
                "value" : ", ".join(s.displayName for s in active),
                "inline" : True,
            })

        recent = tracker.GetHistory()[-RECENT_SESSIONS_IN_SUMMARY:]
        if len(recent) > 0:
            lines = []
            for s in recent:
                duration = s.duration if s.duration else "Active"
                suffix = " (disconnected)" if s.orphaned else ""
                lines.append(f"**{s.displayName}** - {duration}{suffix}")
            fields.append({
                "name" : "🕒 Recent Sessions",
                "value" : "\n".join(lines),
                "inline" : False,
            })
        return fields

    def SendSessionSummary(self, tracker : sessiontracker.SessionTracker) -> bool:
        if not self._Opt("enableDiscordSessionSummary", False):
            return False
        if len(tracker.GetHistory()) == 0:
            Log.debug("No camera sessions this match, skipping summary")
            return False
        return self._SendDiscord(TITLE_SUMMARY, None, self._Opt("summaryColor", 0), self.BuildSummaryFields(tracker))
