import datetime
import logMessage

EOS_A = "0002a10186d9414496bf20d22d3860ba"
STEAM_A = "76561198000000001"
IDS_A = f"EOS: {EOS_A} steam: {STEAM_A}"

POSSESS_CAMERA = ("[2024.01.15-12.30.45:123][456]LogSquadTrace: [DedicatedServer]ASQPlayerController::OnPossess(): "
                  f"PC=Admin A (Online IDs: {IDS_A}) Pawn=CameraMan_C_2130546928 FullPath=CameraMan_C /Game/Maps/Narva.Narva:PersistentLevel.CameraMan_C_2130546928")
POSSESS_SOLDIER = ("[2024.01.15-12.30.45:123][456]LogSquadTrace: [DedicatedServer]ASQPlayerController::OnPossess(): "
                   f"PC=Admin A (Online IDs: {IDS_A}) Pawn=BP_Soldier_RU_Rifleman_C_2130546928 FullPath=BP_Soldier_RU_Rifleman_C")
UNPOSSESS = ("[2024.01.15-12.31.45:123][457]LogSquadTrace: [DedicatedServer]ASQPlayerController::OnUnPossess(): "
             f"PC=Admin A (Online IDs: {IDS_A}) Exiting Vehicle: FALSE")
CONNECTED = ("[2024.01.15-12.29.00:000][ 12]LogSquad: PostLogin: NewPlayer: BP_PlayerController_C "
             "/Game/Maps/Narva/Gameplay_Layers/Narva_RAAS_v1.Narva_RAAS_v1:PersistentLevel.BP_PlayerController_C_2130401015 "
             f"(IP: 192.168.1.5 | Online IDs: {IDS_A})")
DISCONNECTED = ("[2024.01.15-12.35.45:123][456]LogNet: UChannel::Close: Sending CloseBunch. ChIndex == 0. Name: [UChannel] ChIndex: 0, "
                "Closing: 0 [UNetConnection] RemoteAddr: 192.168.1.5:7777, Name: EOSIpNetConnection_2147482148, "
                "Driver: GameNetDriver EOSNetDriver_2147482427, IsServer: YES, PC: BP_PlayerController_C_2130401015, "
                f"Owner: BP_PlayerController_C_2130401015, UniqueId: RedpointEOS:{EOS_A.upper()}")
NEW_GAME = ("[2024.01.15-12.00.00:000][  0]LogWorld: Bringing World /Game/Maps/Narva/Gameplay_Layers/Narva_RAAS_v1.Narva_RAAS_v1 "
            "up for play (max tick rate 50) at 2024.01.15-12.00.00")
TRANSITION = ("[2024.01.15-11.59.00:000][  0]LogWorld: Bringing World /Game/Maps/TransitionMap/TransitionMap.TransitionMap "
              "up for play (max tick rate 50) at 2024.01.15-11.59.00")
ROUND_ENDED = "[2024.01.15-13.00.00:000][999]LogGameState: Match State Changed from InProgress to WaitingPostMatch"
CHAT = f"[ChatAll] [Online IDs:{IDS_A}] Admin A : !camerastats"

LIST_PLAYERS = f"""----- Active Players -----
ID: 0 | Online IDs: {IDS_A} | Name: Admin A | Team ID: 1 | Squad ID: N/A | Is Leader: False | Role: USA_Rifleman_01
ID: 3 | Online IDs: steam: 76561198000000009 | Name: No Eos | Team ID: 2 | Squad ID: 1 | Is Leader: True | Role: RUS_SL_01
----- Recently Disconnected Players [Max of 15] -----
"""


def test_possess_camera():
    m = logMessage.POSSESS_PATTERN.match(POSSESS_CAMERA)
    assert m != None
    assert m.group("name") == "Admin A"
    assert m.group("pawn") == "CameraMan"
    assert m.group("time") == "2024.01.15-12.30.45:123"


def test_possess_soldier():
    m = logMessage.POSSESS_PATTERN.match(POSSESS_SOLDIER)
    assert m.group("pawn") == "BP_Soldier_RU_Rifleman"


def test_unpossess():
    m = logMessage.UNPOSSESS_PATTERN.match(UNPOSSESS)
    assert m.group("name") == "Admin A"
    assert logMessage.ParseOnlineIds(m.group("ids")) == {"eos" : EOS_A, "steam" : STEAM_A}


def test_connected():
    m = logMessage.CONNECTED_PATTERN.match(CONNECTED)
    assert m.group("controller") == "BP_PlayerController_C_2130401015"
    assert m.group("ip") == "192.168.1.5"
    assert logMessage.ParseOnlineIds(m.group("ids"))["eos"] == EOS_A


def test_disconnected():
    m = logMessage.DISCONNECTED_PATTERN.match(DISCONNECTED)
    assert m.group("controller") == "BP_PlayerController_C_2130401015"
    assert m.group("eos").lower() == EOS_A


def test_new_game():
    m = logMessage.NEW_GAME_PATTERN.match(NEW_GAME)
    assert m.group("level") == "Narva"
    assert m.group("layer") == "Narva_RAAS_v1"
    t = logMessage.NEW_GAME_PATTERN.match(TRANSITION)
    assert t.group("level") == logMessage.TRANSITION_LEVEL


def test_round_ended():
    assert logMessage.ROUND_ENDED_PATTERN.match(ROUND_ENDED) != None
    assert logMessage.ROUND_ENDED_PATTERN.match(NEW_GAME) == None


def test_chat():
    m = logMessage.CHAT_PATTERN.match(CHAT)
    assert m.group("chat") == "ChatAll"
    assert m.group("name") == "Admin A"
    assert m.group("message") == "!camerastats"


def test_patterns_do_not_overlap():
    lines = [POSSESS_CAMERA, UNPOSSESS, CONNECTED, DISCONNECTED, NEW_GAME, ROUND_ENDED, CHAT]
    patterns = [logMessage.POSSESS_PATTERN, logMessage.UNPOSSESS_PATTERN, logMessage.CONNECTED_PATTERN,
                logMessage.DISCONNECTED_PATTERN, logMessage.NEW_GAME_PATTERN, logMessage.ROUND_ENDED_PATTERN,
                logMessage.CHAT_PATTERN]
    for i, line in enumerate(lines):
        matched = [j for j, p in enumerate(patterns) if p.match(line)]
        assert matched == [i]


def test_parse_log_time_is_utc():
    expected = datetime.datetime(2024, 1, 15, 12, 30, 45, 123000, tzinfo=datetime.timezone.utc)
    assert logMessage.ParseLogTime("2024.01.15-12.30.45:123") == int(expected.timestamp() * 1000)
    assert logMessage.ParseLogTime("garbage") == None


def test_parse_online_ids_lowercases_eos():
    ids = logMessage.ParseOnlineIds(f"EOS: {EOS_A.upper()} steam: {STEAM_A}")
    assert ids == {"eos" : EOS_A, "steam" : STEAM_A}


def test_parse_list_players():
    players = logMessage.ParseListPlayers(LIST_PLAYERS)
    assert players == [{"id" : 0, "eos" : EOS_A, "steam" : STEAM_A, "name" : "Admin A"}]
    assert logMessage.ParseListPlayers(None) == []
