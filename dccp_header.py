# dccp_header - DCCP generic header and type-specific extension header (RFC 4340 5.1-5.6)
from dataclasses import dataclass

from dccp_utils import BinaryReader, InvalidType, check_length

# ==================================================================================
# CONSTANTS
# ==================================================================================

# Generic header sizes: 24-bit sequence number form / 48-bit (X=1) form
BASIC_HEADER_LEN = 12
EXTENDED_HEADER_LEN = 16

DCCP_PKT_REQUEST  = 0
DCCP_PKT_RESPONSE = 1
DCCP_PKT_DATA     = 2
DCCP_PKT_ACK      = 3
DCCP_PKT_DATAACK  = 4
DCCP_PKT_CLOSEREQ = 5
DCCP_PKT_CLOSE    = 6
DCCP_PKT_RESET    = 7
DCCP_PKT_SYNC     = 8
DCCP_PKT_SYNCACK  = 9

PACKET_TYPE_NAMES = {
    DCCP_PKT_REQUEST:  "DCCP-Request",
    DCCP_PKT_RESPONSE: "DCCP-Response",
    DCCP_PKT_DATA:     "DCCP-Data",
    DCCP_PKT_ACK:      "DCCP-Ack",
    DCCP_PKT_DATAACK:  "DCCP-DataAck",
    DCCP_PKT_CLOSEREQ: "DCCP-CloseReq",
    DCCP_PKT_CLOSE:    "DCCP-Close",
    DCCP_PKT_RESET:    "DCCP-Reset",
    DCCP_PKT_SYNC:     "DCCP-Sync",
    DCCP_PKT_SYNCACK:  "DCCP-SyncAck",
}

# Packet types whose extension is just the 8-byte acknowledgement field
ACK_BEARING_TYPES = (
    DCCP_PKT_ACK,
    DCCP_PKT_DATAACK,
    DCCP_PKT_CLOSEREQ,
    DCCP_PKT_CLOSE,
    DCCP_PKT_SYNC,
    DCCP_PKT_SYNCACK,
)

# Extra fixed bytes after the generic header, per packet type
EXTENSION_LEN = {
    DCCP_PKT_REQUEST: 4,
    DCCP_PKT_RESPONSE: 12,
    DCCP_PKT_DATA: 0,
    DCCP_PKT_RESET: 12,
}
EXTENSION_LEN.update({t: 8 for t in ACK_BEARING_TYPES})

RESET_CODE_NAMES = {
    0:  "unspecified",
    1:  "closed",
    2:  "aborted",
    3:  "no_connection",
    4:  "packet_error",
    5:  "option_error",
    6:  "mandatory_error",
    7:  "connection_refused",
    8:  "bad_service_code",
    9:  "too_busy",
    10: "bad_init_cookie",
    11: "aggression_penalty",
}


# ==================================================================================
# DATA MODEL
# ==================================================================================

@dataclass(frozen=True)
class GenericHeader:
    source_port: int
    dest_port: int
    data_offset: int
    ccval: int
    cscov: int
    checksum: int
    extended_sequence: bool
    packet_type: int
    sequence_number: int

    @property
    def basic_length(self):
        return EXTENDED_HEADER_LEN if self.extended_sequence else BASIC_HEADER_LEN

    @property
    def header_length(self):
        """Data Offset in bytes: fixed headers plus options."""
        return self.data_offset * 4


@dataclass(frozen=True)
class RequestExtension:
    service_code: int


@dataclass(frozen=True)
class ResponseExtension:
    ack_number: int
    service_code: int


@dataclass(frozen=True)
class ResetExtension:
    ack_number: int
    reset_code: int
    reset_data: bytes

    @property
    def reset_code_name(self):
        return RESET_CODE_NAMES.get(self.reset_code)


@dataclass(frozen=True)
class AckExtension:
    ack_number: int


@dataclass(frozen=True)
class DataExtension:
    pass


# ==================================================================================
# DECODERS
# ==================================================================================

def decode_generic_header(reader: BinaryReader, length: int) -> GenericHeader:
    """
    Reads the generic header from the start of the packet.

     0                   1                   2                   3
     0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1
    +---------------+---------------+---------------+---------------+
    |          Source Port          |           Dest Port           |
    +---------------+-------+-------+---------------+---------------+
    |  Data Offset  | CCVal | CsCov |           Checksum            |
    +-------+-------+-+-----+-------+---------------+---------------+
    | Res | Type  |X|   Reserved    |  Sequence Number (high bits)  .
    +-------+-------+-+-------------+---------------+---------------+
    .                  Sequence Number (low bits)                   |
    +---------------+---------------+---------------+---------------+

    With X=0 the reserved byte is absent and the sequence number is the
    24 bits that follow the type byte (12-byte header).

    'length' is the transport length claimed by the IP layer; it is
    checked separately from what was actually captured.
    """
    check_length("length", length, "<", BASIC_HEADER_LEN)

    # X bit decides the size of everything else
    reader.position(8)
    xtr = reader.peek_uint8()
    extended = bool(xtr & 0x01)
    basic_len = EXTENDED_HEADER_LEN if extended else BASIC_HEADER_LEN

    check_length("length", length, "<", basic_len)
    reader.require(basic_len, at=0)

    reader.position(0)
    sport = reader.read_uint16()
    dport = reader.read_uint16()
    doff = reader.read_uint8()
    ccval_cscov = reader.read_uint8()
    checksum = reader.read_uint16()
    reader.skip(1)  # xtr, already peeked

    if extended:
        reader.skip(1)
        seq = reader.read_uint48()
    else:
        seq = reader.read_uint24()

    return GenericHeader(
        source_port=sport,
        dest_port=dport,
        data_offset=doff,
        ccval=(ccval_cscov >> 4) & 0x0F,
        cscov=ccval_cscov & 0x0F,
        checksum=checksum,
        extended_sequence=extended,
        packet_type=(xtr >> 1) & 0x0F,
        sequence_number=seq,
    )


def read_ack_number(reader, header):
    """
    Acknowledgement subheader at the end of the generic header.
    Always 8 bytes on the wire for the types printed here; with X=1 the
    first two are reserved, with X=0 only the 24 bits after one reserved
    byte are meaningful.
    """
    base = header.basic_length
    if header.extended_sequence:
        reader.position(base + 2)
        return reader.read_uint48()
    reader.position(base + 1)
    return reader.read_uint24()


def decode_type_extension(reader: BinaryReader, header: GenericHeader, length: int):
    """
    Decodes the extension header selected by header.packet_type.

    Returns (extension, fixed_header_length) where fixed_header_length is
    the generic header plus the extension. Raises InvalidType for the six
    unassigned packet types.
    """
    ptype = header.packet_type
    if ptype not in EXTENSION_LEN:
        raise InvalidType()

    base = header.basic_length
    fixed_len = base + EXTENSION_LEN[ptype]
    check_length("length", length, "<", fixed_len)

    if ptype == DCCP_PKT_DATA:
        return DataExtension(), fixed_len

    if ptype == DCCP_PKT_REQUEST:
        reader.position(base)
        return RequestExtension(service_code=reader.read_uint32()), fixed_len

    if ptype == DCCP_PKT_RESPONSE:
        reader.position(base + 8)
        service = reader.read_uint32()
        ack = read_ack_number(reader, header)
        return ResponseExtension(ack_number=ack, service_code=service), fixed_len

    if ptype == DCCP_PKT_RESET:
        reader.require(12, at=base)
        reader.position(base + 8)
        code = reader.read_uint8()
        data = reader.read_bytes(3)
        ack = read_ack_number(reader, header)
        return ResetExtension(ack_number=ack, reset_code=code, reset_data=data), fixed_len

    # Ack, DataAck, CloseReq, Close, Sync, SyncAck
    return AckExtension(ack_number=read_ack_number(reader, header)), fixed_len


def decode_header(buffer, length):
    """
    Header Decoder entry point.
    Returns (GenericHeader, extension, fixed_header_length).
    """
    reader = BinaryReader(buffer)
    header = decode_generic_header(reader, length)
    extension, fixed_len = decode_type_extension(reader, header, length)
    return header, extension, fixed_len


def checksum_coverage(header, length):
    """
    Number of leading packet bytes covered by the checksum (RFC 4340 9.2).
    CsCov 0 covers the whole packet; otherwise the header plus CsCov-1 words
    of payload, never more than the packet itself.
    """
    if header.cscov == 0:
        return length
    cov = (header.data_offset + header.cscov - 1) * 4
    return length if cov > length else cov


def options_budget(header, fixed_len):
    """
    Bytes of option area between the fixed headers and Data Offset.
    A Data Offset shorter than the fixed headers yields 0 (no options).
    """
    return max(header.header_length - fixed_len, 0)
