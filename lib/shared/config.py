import json
from typing import Self
import logging
import os
import yaml


Log = logging.getLogger(__name__)

class Config(object):
    '''
    When instantiated directly, contains the given dictionary (or an empty one).

    When instantiated with from_file, contains the configuration stored in the file at the given path.
    The format follows the extension, .yaml / .yml files are YAML and everything else is JSON.
    A missing file is created from the default text, a file that does not parse is left alone.
    '''
    def __init__(self, data = None):
        if data == None:
            self.cfg = {}
        else:
            self.cfg = data
        self.path = None

    @classmethod
    def from_file(cls, path, default : str = None):
        ext = os.path.splitext(path)[1].lower()
        if ext == ".yaml" or ext == ".yml":
            return YamlConfig.from_file(path, default)
        else:
            return JsonConfig.from_file(path, default)

    def GetValue(self, paramName : str, defaultValue : any):
        if paramName in self.cfg:
            return self.cfg[paramName]
        else:
            Log.debug(f"Config parameter '{paramName}' not found, using default value: {defaultValue}")
            return defaultValue

    def SetValue(self, paramName : str, value : any):
        self.cfg[paramName] = value

    def MergeDefaults(self, defaults : dict) -> list[str]:
        ''' Fills in missing keys from defaults, returns the names of the keys that were missing. '''
        missing = []
        for key, value in defaults.items():
            if key not in self.cfg:
                self.cfg[key] = value
                missing.append(key)
        if len(missing) > 0:
            Log.debug("Config keys filled from defaults: %s", ", ".join(missing))
        return missing

    def Dump(self) -> str:
        return json.dumps(self.cfg, indent=4, ensure_ascii=False)

    def Save(self, path : str = None) -> bool:
        target = path if path != None else self.path
        if target == None:
            Log.warning("Cannot save config without a file path")
            return False
        try:
            with open(target, "wt", encoding="utf-8") as f:
                f.write(self.Dump())
            Log.debug(f"Config saved to {target}")
            return True
        except OSError as e:
            Log.error(f"Unable to save config to {target}: {e}")
            return False

    @classmethod
    def _FromDefault(cls, path : str, default : str):
        if default == None:
            return None
        instance = cls.from_string(default)
        if instance != None:
            try:
                with open(path, "wt", encoding="utf-8") as f:
                    f.write(instance._DefaultText(default))
                Log.info(f"Default config file created: {path}")
            except OSError as e:
                Log.error(f"Unable to write default config file {path}: {e}")
            instance.path = path
        return instance

    def _DefaultText(self, default : str) -> str:
        return default


class JsonConfig(Config):
    @classmethod
    def from_file(cls, jsonPath, default : str = None):
        try:
            Log.debug(f"Attempting to load config from: {jsonPath}")
            with open(jsonPath, encoding="utf-8") as file:
                instance = cls(json.load(file))
        except FileNotFoundError:
            Log.warning(f"Config file not found: {jsonPath}")
            return cls._FromDefault(jsonPath, default)
        except json.JSONDecodeError as e:
            Log.error(f"Invalid JSON in config file {jsonPath}, fix or remove it: {e}")
            return None
        instance.path = jsonPath
        Log.info(f"Successfully loaded config from: {jsonPath}")
        return instance

    @classmethod
    def from_string(cls, target : str) -> Self:
        if target != None:
            try:
                return cls(json.loads(target))
            except json.JSONDecodeError as e:
                Log.error(f"Invalid JSON string provided: {e}")
                return None
        Log.warning("Attempted to create config from None JSON string")
        return None


class YamlConfig(Config):
    @classmethod
    def from_file(cls, yamlPath, default : str = None):
        try:
            Log.debug(f"Attempting to load config from: {yamlPath}")
            with open(yamlPath, encoding="utf-8") as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            Log.warning(f"Config file not found: {yamlPath}")
            return cls._FromDefault(yamlPath, default)
        except yaml.YAMLError as e:
            Log.error(f"Invalid YAML in config file {yamlPath}, fix or remove it: {e}")
            return None
        instance = cls(config if config != None else {})
        instance.path = yamlPath
        Log.info(f"Successfully loaded config from: {yamlPath}")
        return instance

    def Dump(self) -> str:
        return yaml.safe_dump(self.cfg, sort_keys=False, allow_unicode=True)

    def _DefaultText(self, default : str) -> str:
        # defaults are kept as JSON text, written out in YAML
        return self.Dump()

    @classmethod
    def from_string(cls, target : str) -> Self:
        if target != None:
            try:
                config = yaml.safe_load(target)
                return cls(config if config != None else {})
            except yaml.YAMLError as e:
                Log.error(f"Error creating config from YAML string: {e}")
                return None
        Log.warning("Attempted to create config from None YAML string")
        return None
