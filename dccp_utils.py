import socket

# ==================================================================================
# ERRORS
# ==================================================================================

class DccpError(Exception):
    """
    Base for everything that stops the decode of one packet.

    'detail' is the bracketed check text printed before the invalid marker
    (e.g. "length 10 < 12"). It is optional; a bare InvalidType carries none.
    """
    def __init__(self, detail=None):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail


class Truncated(DccpError):
    """Claimed length too short for the field about to be read."""


class CaptureTruncated(Truncated):
    """The captured buffer ends before the field about to be read."""


class InvalidType(DccpError):
    pass


class InvalidOption(DccpError):
    pass


def check_length(what, value, op, bound, error=Truncated):
    """
    Raise 'error' when 'value op bound' holds.
    The detail reads like the failed comparison: "length 10 < 12".
    """
    failed = {
        '<': value < bound,
        '>': value > bound,
        '!=': value != bound,
    }[op]
    if failed:
        raise error(f"{what} {value} {op} {bound}")


# ==================================================================================
# BOUNDED READER
# ==================================================================================

class BinaryReader:
    """
    Big-endian cursor over a captured buffer.

    Every read is checked against the captured bytes and raises
    CaptureTruncated instead of returning a short slice. 'limit' is the
    logical end of the region this cursor may walk (defaults to the buffer
    end); window() hands out a sub-cursor over the next n bytes so position
    and remaining length always move together.
    """
    def __init__(self, data, offset=0, limit=None):
        self.data = data
        self.offset = offset
        self.limit = len(data) if limit is None else limit

    def position(self, offset):
        self.offset = offset

    def remaining(self):
        return self.limit - self.offset

    def captured(self, length, at=None):
        """True when 'length' bytes from 'at' (default: the cursor) were captured."""
        start = self.offset if at is None else at
        return start + length <= len(self.data)

    def require(self, length, at=None):
        start = self.offset if at is None else at
        if length < 0 or start + length > len(self.data):
            raise CaptureTruncated()

    def _read_be(self, size):
        self.require(size)
        val = int.from_bytes(self.data[self.offset:self.offset+size], 'big')
        self.offset += size
        return val

    def read_uint8(self):
        return self._read_be(1)

    def read_uint16(self):
        return self._read_be(2)

    def read_uint24(self):
        return self._read_be(3)

    def read_uint32(self):
        return self._read_be(4)

    def read_uint48(self):
        return self._read_be(6)

    def read_bytes(self, length):
        self.require(length)
        val = bytes(self.data[self.offset:self.offset+length])
        self.offset += length
        return val

    def peek_uint8(self):
        self.require(1)
        return self.data[self.offset]

    def skip(self, length):
        self.require(length)
        self.offset += length

    def window(self, length):
        """Sub-cursor over [offset, offset + length); the parent is not moved."""
        return BinaryReader(self.data, self.offset, self.offset + length)


# ==================================================================================
# TOKEN TABLES & FORMATTING
# ==================================================================================

def tok2str(table, fmt, value):
    """Look 'value' up in 'table', falling back to fmt % value."""
    name = table.get(value)
    if name is None:
        return fmt % value
    return name


def hex_string(data):
    # lower case, no separators: 0xdeadbeef
    return "0x" + bytes(data).hex()


def format_address(raw):
    """Numeric IPv4/IPv6 rendering of a 4- or 16-byte address."""
    if len(raw) == 16:
        return socket.inet_ntop(socket.AF_INET6, raw)
    return socket.inet_ntop(socket.AF_INET, raw)
