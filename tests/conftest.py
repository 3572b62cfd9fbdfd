import argparse
import pytest
import lib.shared.adminlist as adminlist
import lib.shared.player as player
import lib.shared.rcon as rcon
import lib.shared.scheduler as scheduler
import lib.shared.serverdata as serverdata

START_MS = 1_700_000_000_000

ADMIN_A = player.Player("0002a10186d9414496bf20d22d3860ba", "AdminA", "76561198000000001")
ADMIN_B = player.Player("0002b20286d9414496bf20d22d3860bb", "AdminB", "76561198000000002")
ADMIN_C = player.Player("0002c30386d9414496bf20d22d3860bc", "AdminC", "76561198000000003")
PLAYER_D = player.Player("0002d40486d9414496bf20d22d3860bd", "PlayerD", "76561198000000004")

ADMINS_CFG = \
"""// test admins
Group=SuperAdmin:changemap,cameraman,canseeadminchat,chat,kick,ban
Group=Camera:cameraman
Admin=76561198000000001:SuperAdmin // AdminA
Admin=0002b20286d9414496bf20d22d3860bb:SuperAdmin // AdminB
Admin=76561198000000003:Camera // AdminC
"""

class FakeClock():
    def __init__(self, start : int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def Advance(self, ms : int) -> int:
        self.now += ms
        return self.now


class FakeInterface():
    def __init__(self):
        self.warnings : list[tuple[str, str]] = []
        self.failFor = set()

    def Warn(self, playerId : str, text : str) -> str:
        if playerId in self.failFor:
            raise rcon.RconError("warn failed")
        self.warnings.append((playerId, text))
        return ""

    def WarningsFor(self, playerId : str) -> list[str]:
        return [text for target, text in self.warnings if target == playerId]


class FakeDiscord():
    def __init__(self, enabled : bool = True, fail : bool = False):
        self.enabled = enabled
        self.fail = fail
        self.embeds = []
        self.started = False

    def IsEnabled(self) -> bool:
        return self.enabled

    def Start(self) -> bool:
        self.started = True
        return True

    def Stop(self):
        self.started = False

    def SendEmbed(self, title, description = None, color = 0, fields = None, ping = None) -> bool:
        if self.fail:
            raise RuntimeError("discord is down")
        self.embeds.append({"title" : title, "description" : description, "color" : color, "fields" : fields, "ping" : ping})
        return True

    def Titles(self) -> list[str]:
        return [e["title"] for e in self.embeds]


def MakeServerData(online : list, iface = None, adminsText : str = ADMINS_CFG) -> serverdata.ServerData:
    admins = adminlist.AdminList.FromString(adminsText)
    api = serverdata.API()
    api.GetPlayerCount = lambda : len(online)
    api.GetPlayerById = lambda eosId : next((p for p in online if p.GetId() == eosId), None)
    api.GetAdminsWithPermission = lambda perm : [p for p in online if admins.HasPermission(p.GetIdentities(), perm)]
    api.IsAdmin = lambda pl : pl != None and admins.IsAdmin(pl.GetIdentities())
    args = argparse.Namespace(debug=False, logfile="", config=None)
    return serverdata.ServerData(api, iface if iface != None else FakeInterface(), args, admins)


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def sched(clock):
    return scheduler.Scheduler(clock)

@pytest.fixture
def iface():
    return FakeInterface()

@pytest.fixture
def fakeDiscord():
    return FakeDiscord()
