import json
import yaml
import lib.shared.config as config

FALLBACK = '{"a" : 1, "b" : [1, 2]}'


def test_missing_file_is_created_from_fallback(tmp_path):
    path = tmp_path / "cfg.json"
    cfg = config.Config.from_file(str(path), FALLBACK)
    assert cfg.GetValue("a", None) == 1
    assert cfg.path == str(path)
    assert json.loads(path.read_text(encoding="utf-8")) == {"a" : 1, "b" : [1, 2]}


def test_invalid_json_without_fallback(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{not json", encoding="utf-8")
    assert config.Config.from_file(str(path)) == None


def test_invalid_file_is_not_overwritten(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{\"a\" : 1,", encoding="utf-8")
    assert config.Config.from_file(str(path), FALLBACK) == None
    assert path.read_text(encoding="utf-8") == "{\"a\" : 1,"

    yamlPath = tmp_path / "cfg.yaml"
    yamlPath.write_text("a: [1, 2\n", encoding="utf-8")
    assert config.Config.from_file(str(yamlPath), FALLBACK) == None
    assert yamlPath.read_text(encoding="utf-8") == "a: [1, 2\n"


def test_missing_yaml_is_created_as_yaml(tmp_path):
    path = tmp_path / "cfg.yaml"
    cfg = config.Config.from_file(str(path), FALLBACK)
    assert isinstance(cfg, config.YamlConfig)
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"a" : 1, "b" : [1, 2]}
    assert not path.read_text(encoding="utf-8").startswith("{")


def test_merge_defaults_and_save(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text('{"a" : 5}', encoding="utf-8")
    cfg = config.Config.from_file(str(path), FALLBACK)
    assert cfg.MergeDefaults({"a" : 1, "c" : "x"}) == ["c"]
    assert cfg.GetValue("a", None) == 5
    assert cfg.Save()
    assert json.loads(path.read_text(encoding="utf-8")) == {"a" : 5, "c" : "x"}


def test_save_without_path():
    assert not config.Config({"a" : 1}).Save()


def test_yaml_round_trip(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("enterMessage: 'hi {admin}'\ncooldownSeconds: 30\n", encoding="utf-8")
    cfg = config.Config.from_file(str(path))
    assert isinstance(cfg, config.YamlConfig)
    assert cfg.GetValue("cooldownSeconds", None) == 30
    cfg.SetValue("cooldownSeconds", 10)
    assert cfg.Save()
    assert config.Config.from_file(str(path)).GetValue("cooldownSeconds", None) == 10
