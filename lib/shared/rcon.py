import logging
import socket
import struct
import threading
import itertools

Log = logging.getLogger(__name__)

# Squad speaks the Source RCON framing over TCP:
# int32 size | int32 id | int32 type | body \0 | \0, little endian
SERVERDATA_RESPONSE_VALUE = 0
SERVERDATA_CHAT_VALUE = 1 # squad pushes chat lines with this type
SERVERDATA_AUTH_RESPONSE = 2
SERVERDATA_EXECCOMMAND = 2
SERVERDATA_AUTH = 3

HEADER_SIZE = 4
MIN_PACKET_SIZE = 10 # id + type + two terminators
MAX_PACKET_SIZE = 4096 + MIN_PACKET_SIZE

class RconError(Exception):
    pass

class Packet():
    def __init__(self, id : int, type : int, body : str):
        self.id = id
        self.type = type
        self.body = body

    def Encode(self) -> bytes:
        payload = struct.pack("<ii", self.id, self.type) + self.body.encode("utf-8") + b"\x00\x00"
        return struct.pack("<i", len(payload)) + payload

    def __eq__(self, other):
        if not isinstance(other, Packet):
            return NotImplemented
        return (self.id, self.type, self.body) == (other.id, other.type, other.body)

    def __repr__(self):
        return f"Packet(id={self.id}, type={self.type}, body={self.body!r})"

def DecodePackets(data : bytes) -> tuple[list[Packet], bytes]:
    """ Splits a stream buffer into complete packets, returns them with the unconsumed remainder """
    packets = []
    offset = 0
    while len(data) - offset >= HEADER_SIZE:
        size = struct.unpack_from("<i", data, offset)[0]
        if size < MIN_PACKET_SIZE or size > MAX_PACKET_SIZE:
            raise RconError(f"Invalid packet size {size}")
        if len(data) - offset - HEADER_SIZE < size:
            break
        start = offset + HEADER_SIZE
        id, type = struct.unpack_from("<ii", data, start)
        body = data[start + 8 : start + size - 2].decode("utf-8", errors="replace")
        packets.append(Packet(id, type, body))
        offset = start + size
    return packets, data[offset:]

def QuoteId(playerId : str) -> str:
    return '"%s"' % str(playerId).replace('"', "")

class PendingResponse():
    """ Body collected for one command. Squad splits long responses over several packets,
    the echo of the empty packet sent behind the command marks the end. """
    def __init__(self, requestId : int, terminatorId : int):
        self.requestId = requestId
        self.terminatorId = terminatorId
        self.done = threading.Event()
        self.body = ""


class Rcon(object):
    """ Persistent RCON connection. Responses are matched to requests by packet id,
    chat packets pushed by the server are handed to onChat from the reader thread.
    A dropped connection is reopened by the next command. """
    def __init__(self, address : tuple, password : str, timeout : float = 5.0, onChat = None):
        self._address = address
        self._password = password
        self._timeout = timeout
        self._onChat = onChat
        self._sock = None
        self._openLock = threading.Lock()
        self._sendLock = threading.Lock()
        self._waitLock = threading.Lock()
        self._waiters : dict[int, PendingResponse] = {}
        self._ids = itertools.count(1)
        self._buffer = b""
        self._readerThread = None
        self._isOpened = False

    def __del__(self):
        if self._isOpened:
            self.Close()

    def IsOpened(self) -> bool:
        return self._isOpened

    def Open(self) -> bool:
        with self._openLock:
            if self._isOpened:
                return True
            sock = None
            try:
                sock = socket.create_connection(self._address, timeout=self._timeout)
                self._buffer = b""
                self._Authenticate(sock)
            except (OSError, RconError) as e:
                Log.error("Unable to open RCON connection to %s:%s : %s", self._address[0], self._address[1], str(e))
                if sock != None:
                    sock.close()
                return False
            sock.settimeout(None)
            self._sock = sock
            self._isOpened = True
            self._readerThread = threading.Thread(target=self._ReadThreadHandler, args=(sock,), daemon=True)
            self._readerThread.start()
            Log.info("RCON connection opened to %s:%s", self._address[0], self._address[1])
            return True

    def Close(self):
        self._CloseSocket(self._sock)

    def _CloseSocket(self, sock):
        with self._openLock:
            if not self._isOpened or sock is not self._sock:
                return
            self._isOpened = False
            self._sock = None
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
            with self._waitLock:
                for waiter in set(self._waiters.values()):
                    waiter.done.set()
                self._waiters.clear()
            Log.info("RCON connection closed.")

    def _Authenticate(self, sock):
        authId = next(self._ids)
        sock.sendall(Packet(authId, SERVERDATA_AUTH, self._password).Encode())
        while True:
            for packet in self._ReadPackets(sock):
                if packet.type == SERVERDATA_AUTH_RESPONSE:
                    if packet.id == -1:
                        raise RconError("RCON authentication failed, check the password.")
                    return

    def _ReadPackets(self, sock) -> list[Packet]:
        chunk = sock.recv(4096)
        if chunk == b"":
            raise RconError("Remote host closed the RCON connection.")
        self._buffer += chunk
        packets, self._buffer = DecodePackets(self._buffer)
        return packets

    def _ReadThreadHandler(self, sock):
        while self._isOpened and sock is self._sock:
            try:
                packets = self._ReadPackets(sock)
            except (OSError, RconError) as e:
                if self._isOpened and sock is self._sock:
                    Log.error("RCON reader stopped : %s", str(e))
                    self._CloseSocket(sock)
                break
            for packet in packets:
                self._Dispatch(packet)

    def _Dispatch(self, packet : Packet):
        if packet.type == SERVERDATA_CHAT_VALUE:
            if self._onChat != None:
                self._onChat(packet.body)
            return
        with self._waitLock:
            waiter = self._waiters.get(packet.id)
            if waiter == None:
                return
            if packet.id == waiter.terminatorId:
                waiter.done.set()
            else:
                waiter.body += packet.body

    def Execute(self, command : str) -> str:
        if not self._isOpened:
            Log.info("RCON connection is down, reconnecting...")
            if not self.Open():
                raise RconError("RCON connection is not opened.")
        waiter = PendingResponse(next(self._ids), next(self._ids))
        with self._waitLock:
            self._waiters[waiter.requestId] = waiter
            self._waiters[waiter.terminatorId] = waiter
        try:
            with self._sendLock:
                sock = self._sock
                if sock == None:
                    raise RconError("RCON connection closed before the command was sent.")
                sock.sendall(Packet(waiter.requestId, SERVERDATA_EXECCOMMAND, command).Encode() +
                             Packet(waiter.terminatorId, SERVERDATA_RESPONSE_VALUE, "").Encode())
            if not waiter.done.wait(self._timeout):
                raise RconError(f"Timed out waiting for response to '{command}'")
            if not self._isOpened:
                raise RconError("RCON connection closed while waiting for a response.")
            return waiter.body
        except OSError as e:
            raise RconError(str(e)) from e
        finally:
            with self._waitLock:
                self._waiters.pop(waiter.requestId, None)
                self._waiters.pop(waiter.terminatorId, None)

    def Warn(self, playerId : str, message : str) -> str:
        return self.Execute(f"AdminWarn {QuoteId(playerId)} {message}")

    def ListPlayers(self) -> str:
        return self.Execute("ListPlayers")
