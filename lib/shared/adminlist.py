import logging
import re

Log = logging.getLogger(__name__)

# Squad Admins.cfg
# Group=SuperAdmin:changemap,cameraman,canseeadminchat,chat,kick,ban
# Admin=76561198000000000:SuperAdmin // Some Name
GROUP_PATTERN = re.compile(r"^Group=(?P<group>[^:]+):(?P<perms>.*)$")
ADMIN_PATTERN = re.compile(r"^Admin=(?P<id>[0-9a-fA-F]+):(?P<group>[^\s/]+)")

class AdminList():
    def __init__(self):
        self._groups : dict[str, set[str]] = {}
        self._admins : dict[str, set[str]] = {}

    @classmethod
    def FromFile(cls, path : str):
        if path == None or path == "":
            Log.warning("No admins file configured, admin permissions are empty.")
            return cls()
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                instance = cls.FromString(f.read())
        except FileNotFoundError:
            Log.warning(f"Admins file not found: {path}")
            return cls()
        Log.info(f"Loaded {instance.GetAdminCount()} admins from {path}")
        return instance

    @classmethod
    def FromString(cls, text : str):
        instance = cls()
        instance.Parse(text)
        return instance

    def Parse(self, text : str):
        groups = {}
        admins : list[tuple[str, str]] = []
        for rawLine in text.splitlines():
            line = rawLine.strip()
            if line == "" or line.startswith("//"):
                continue
            m = GROUP_PATTERN.match(line)
            if m:
                perms = m.group("perms").split("//")[0]
                groups[m.group("group").strip()] = set(p.strip().lower() for p in perms.split(",") if p.strip())
                continue
            m = ADMIN_PATTERN.match(line)
            if m:
                admins.append((m.group("id").lower(), m.group("group")))
                continue
            Log.debug(f"Skipping unrecognized admins line: {line}")
        self._groups.update(groups)
        for adminId, group in admins:
            if group not in self._groups:
                Log.warning(f"Admin {adminId} references unknown group {group}")
                continue
            self._admins.setdefault(adminId, set()).update(self._groups[group])

    def IsAdmin(self, identities : list[str]) -> bool:
        for i in identities:
            if i in self._admins:
                return True
        return False

    def HasPermission(self, identities : list[str], permission : str) -> bool:
        permission = permission.lower()
        for i in identities:
            if i in self._admins and permission in self._admins[i]:
                return True
        return False

    def GetAdminsWithPermission(self, permission : str) -> list[str]:
        permission = permission.lower()
        return [adminId for adminId, perms in self._admins.items() if permission in perms]

    def GetAdminCount(self) -> int:
        return len(self._admins)
