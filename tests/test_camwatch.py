import argparse
import json
import queue
import yaml
import pytest
import camwatch
import camwatchEvent
import logMessage
import test_logmessage as lines
from conftest import ADMINS_CFG

class FakeHostInterface():
    def __init__(self, listPlayers = ""):
        self.opened = False
        self.messages = queue.Queue()
        self.listPlayers = listPlayers

    def Open(self) -> bool:
        self.opened = True
        return True

    def Close(self):
        self.opened = False

    def IsOpened(self) -> bool:
        return self.opened

    def GetMessages(self) -> queue.Queue:
        return self.messages

    def ListPlayers(self) -> str:
        return self.listPlayers


class RecordingPlugin():
    def __init__(self):
        self.events = []

    def Event(self, event) -> bool:
        self.events.append(event)
        return False

    def Loop(self):
        pass

    def Finish(self):
        pass

    def Types(self) -> list[int]:
        return [e.type for e in self.events]


@pytest.fixture
def server(tmp_path):
    adminsPath = tmp_path / "SquadGame" / "ServerConfig" / "Admins.cfg"
    adminsPath.parent.mkdir(parents=True)
    adminsPath.write_text(ADMINS_CFG.replace("76561198000000001", lines.STEAM_A), encoding="utf-8")
    cfg = json.loads(camwatch.CONFIG_FALLBACK)
    cfg["SquadPath"] = str(tmp_path)
    cfg["Plugins"] = []
    cfgPath = tmp_path / "camwatchCfg.json"
    cfgPath.write_text(json.dumps(cfg), encoding="utf-8")
    args = argparse.Namespace(debug=True, logfile="", config=None)
    sv = camwatch.SquadServer(args, str(cfgPath), FakeHostInterface(lines.LIST_PLAYERS))
    assert sv.GetStatus() == camwatch.SquadServer.STATUS_INIT
    return sv

@pytest.fixture
def recorder(server):
    rec = RecordingPlugin()
    server._pluginManager._plugins["recorder"] = rec
    return rec

def Feed(server, *contents, isStartup = False):
    for content in contents:
        server._ParseMessage(logMessage.LogMessage(content, isStartup))


def test_unconfigured_squad_path_is_a_config_error(tmp_path):
    cfgPath = tmp_path / "camwatchCfg.json"
    args = argparse.Namespace(debug=True, logfile="", config=None)
    sv = camwatch.SquadServer(args, str(cfgPath), FakeHostInterface())
    assert sv.GetStatus() == camwatch.SquadServer.STATUS_CONFIG_ERROR
    assert cfgPath.exists()


def test_yaml_config_is_loaded_as_yaml(tmp_path):
    (tmp_path / "SquadGame" / "ServerConfig").mkdir(parents=True)
    cfg = json.loads(camwatch.CONFIG_FALLBACK)
    cfg["SquadPath"] = str(tmp_path)
    cfg["Plugins"] = []
    cfgPath = tmp_path / "server.yaml"
    text = yaml.safe_dump(cfg, sort_keys=False)
    cfgPath.write_text(text, encoding="utf-8")
    args = argparse.Namespace(debug=True, logfile="", config=str(cfgPath))
    sv = camwatch.SquadServer(args, args.config, FakeHostInterface())
    assert sv.GetStatus() == camwatch.SquadServer.STATUS_INIT
    assert cfgPath.read_text(encoding="utf-8") == text


def test_camera_possess_and_unpossess(server, recorder):
    Feed(server, lines.POSSESS_CAMERA)
    assert recorder.Types() == [camwatchEvent.CAMWATCH_EVENT_TYPE_POSSESSED_ADMIN_CAMERA]
    event = recorder.events[0]
    assert event.player.GetId() == lines.EOS_A
    assert event.player.GetName() == "Admin A"
    assert event.timestamp == logMessage.ParseLogTime("2024.01.15-12.30.45:123")
    assert not event.isStartup

    # a second possess of the camera does not open another session
    Feed(server, lines.POSSESS_CAMERA)
    assert len(recorder.events) == 1

    Feed(server, lines.UNPOSSESS)
    assert recorder.Types()[-1] == camwatchEvent.CAMWATCH_EVENT_TYPE_UNPOSSESSED_ADMIN_CAMERA
    Feed(server, lines.UNPOSSESS)
    assert len(recorder.events) == 2


def test_soldier_possess_is_not_camera(server, recorder):
    Feed(server, lines.POSSESS_SOLDIER, lines.UNPOSSESS)
    assert recorder.events == []


def test_camera_to_soldier_counts_as_leave(server, recorder):
    Feed(server, lines.POSSESS_CAMERA, lines.POSSESS_SOLDIER)
    assert recorder.Types() == [camwatchEvent.CAMWATCH_EVENT_TYPE_POSSESSED_ADMIN_CAMERA,
                                camwatchEvent.CAMWATCH_EVENT_TYPE_UNPOSSESSED_ADMIN_CAMERA]
    assert not server.API_GetPlayerById(lines.EOS_A).IsInCamera()
    # the unpossess that follows must not close a second time
    Feed(server, lines.UNPOSSESS)
    assert len(recorder.events) == 2


def test_startup_flag_is_carried(server, recorder):
    Feed(server, lines.POSSESS_CAMERA, isStartup=True)
    assert recorder.events[0].isStartup


def test_connect_and_disconnect(server, recorder):
    Feed(server, lines.CONNECTED)
    assert recorder.Types() == [camwatchEvent.CAMWATCH_EVENT_TYPE_PLAYER_CONNECTED]
    pl = server.API_GetPlayerById(lines.EOS_A)
    assert pl.GetController() == "BP_PlayerController_C_2130401015"

    Feed(server, lines.DISCONNECTED)
    assert recorder.Types()[-1] == camwatchEvent.CAMWATCH_EVENT_TYPE_PLAYER_DISCONNECTED
    assert recorder.events[-1].player is pl
    assert server.API_GetPlayerById(lines.EOS_A) == None


def test_disconnect_of_unknown_player_is_ignored(server, recorder):
    Feed(server, lines.DISCONNECTED)
    assert recorder.events == []


def test_new_game_skips_transition_and_resets_pawns(server, recorder):
    Feed(server, lines.POSSESS_CAMERA, lines.TRANSITION)
    assert len(recorder.events) == 1
    Feed(server, lines.NEW_GAME)
    assert recorder.Types()[-1] == camwatchEvent.CAMWATCH_EVENT_TYPE_NEW_GAME
    assert recorder.events[-1].layer == "Narva_RAAS_v1"
    assert server._serverData.layer == "Narva_RAAS_v1"
    assert not server.API_GetPlayerById(lines.EOS_A).IsInCamera()


def test_round_ended_and_chat(server, recorder):
    Feed(server, lines.ROUND_ENDED, lines.CHAT)
    assert recorder.Types() == [camwatchEvent.CAMWATCH_EVENT_TYPE_ROUND_ENDED, camwatchEvent.CAMWATCH_EVENT_TYPE_CHAT_MESSAGE]
    chat = recorder.events[1]
    assert chat.message == "!camerastats"
    assert chat.player.GetId() == lines.EOS_A


def test_watchdog_lines(server, recorder):
    Feed(server, "wd_died", "wd_unknown")
    assert recorder.Types() == [camwatchEvent.CAMWATCH_EVENT_TYPE_WD_DIED]


def test_unmatched_lines_are_dropped(server, recorder):
    Feed(server, "[2024.01.15-12.00.00:000][  1]LogNet: something else entirely")
    assert recorder.events == []


def test_loop_drains_interface_queue(server, recorder):
    server._svInterface.messages.put(logMessage.LogMessage(lines.POSSESS_CAMERA))
    server._svInterface.messages.put(logMessage.LogMessage(lines.UNPOSSESS))
    server.Loop()
    assert len(recorder.events) == 2
    assert server._svInterface.messages.empty()


def test_fetch_players_and_admin_lookup(server):
    server._FetchPlayers()
    assert server.API_GetPlayerCount() == 1
    pl = server.API_GetPlayerById(lines.EOS_A)
    assert pl.GetSteamId() == lines.STEAM_A
    assert server.API_IsAdmin(pl)
    assert server.API_GetAdminsWithPermission("canseeadminchat") == [pl]
    assert server.API_GetAdminsWithPermission("nosuchpermission") == []
