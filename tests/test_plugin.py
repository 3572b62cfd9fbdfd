import types
import plugin


def MakeModule(name = "fakeplugin", captures = False, failLoop = False):
    calls = []
    mod = types.ModuleType(name)

    def OnInitialize(data, exports):
        calls.append("init")
        exports.Add("Answer", lambda : 42)
        return True

    def OnStart():
        calls.append("start")
        return True

    def OnLoop():
        if failLoop:
            raise RuntimeError("loop failure")
        calls.append("loop")

    def OnEvent(event):
        calls.append(("event", event))
        return captures

    def OnFinish():
        calls.append("finish")

    mod.OnInitialize = OnInitialize
    mod.OnStart = OnStart
    mod.OnLoop = OnLoop
    mod.OnEvent = OnEvent
    mod.OnFinish = OnFinish
    return mod, calls


def test_lifecycle_and_exports():
    mod, calls = MakeModule()
    plug = plugin.Plugin(mod)
    assert plug.Initialize(None)
    assert plug.Start()
    plug.Loop()
    assert not plug.Event("e")
    plug.Finish()
    plug.Finish()
    assert calls == ["init", "start", "loop", ("event", "e"), "finish"]
    assert plug.GetExports().Get("Answer").pointer() == 42
    assert plug.GetExports().Get("Missing") == None


def test_missing_entry_points_fail_initialize():
    mod, _ = MakeModule()
    del mod.OnLoop
    assert not plugin.Plugin(mod).Initialize(None)


def test_loop_errors_are_contained():
    mod, calls = MakeModule(failLoop=True)
    plug = plugin.Plugin(mod)
    plug.Initialize(None)
    plug.Loop()
    assert calls == ["init"]


def test_event_capture_stops_propagation():
    first, firstCalls = MakeModule("first", captures=True)
    second, secondCalls = MakeModule("second")
    manager = plugin.PluginManager()
    for mod in (first, second):
        plug = plugin.Plugin(mod)
        plug.Initialize(None)
        manager._plugins[mod.__name__] = plug
    manager.Event("e")
    assert ("event", "e") in firstCalls
    assert ("event", "e") not in secondCalls
    assert manager.GetPluginCount() == 2


def test_unknown_plugin_is_skipped():
    manager = plugin.PluginManager()
    assert manager.Initialize([{"path" : "plugins.shared.doesnotexist.doesnotexist"}], None)
    assert manager.GetPluginCount() == 0
