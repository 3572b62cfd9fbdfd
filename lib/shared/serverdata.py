import lib.shared.adminlist as adminlist

class API():
    """
    Function table handed to plugins, filled in by the host.
    Every entry is replaced with a bound host method before plugins are loaded.
    """
    def __init__(self):
        self.GetPlayerCount = None
        self.GetPlayerById = None
        self.GetAdminsWithPermission = None
        self.IsAdmin = None


class ServerData():

    def __init__(self, API : API, iface, args, admins : adminlist.AdminList = None):
        self.API = API
        self.args = args
        self.interface = iface
        self.admins = admins if admins != None else adminlist.AdminList()
        self.name = ""
        self.layer = ""

    def __repr__(self):
        return f"Server data {self.name} ({self.layer})\n"
