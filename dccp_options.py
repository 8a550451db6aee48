# dccp_options - DCCP option TLVs (RFC 4340 5.8, 6, 8.5, 11.4, 13, 9.3)
from dataclasses import dataclass

from dccp_utils import BinaryReader, InvalidOption, Truncated, check_length, hex_string, tok2str

# ==================================================================================
# CONSTANTS
# ==================================================================================

DCCP_OPTION_PADDING            = 0
DCCP_OPTION_MANDATORY          = 1
DCCP_OPTION_SLOW_RECEIVER      = 2
DCCP_OPTION_CHANGE_L           = 32
DCCP_OPTION_CONFIRM_L          = 33
DCCP_OPTION_CHANGE_R           = 34
DCCP_OPTION_CONFIRM_R          = 35
DCCP_OPTION_INIT_COOKIE        = 36
DCCP_OPTION_NDP_COUNT          = 37
DCCP_OPTION_ACK_VECTOR_NONCE_0 = 38
DCCP_OPTION_ACK_VECTOR_NONCE_1 = 39
DCCP_OPTION_DATA_DROPPED       = 40
DCCP_OPTION_TIMESTAMP          = 41
DCCP_OPTION_TIMESTAMP_ECHO     = 42
DCCP_OPTION_ELAPSED_TIME       = 43
DCCP_OPTION_DATA_CHECKSUM      = 44

# Types below this have no length byte
FIRST_LENGTH_OPTION = 32
# Types from here up belong to the CCID in use
FIRST_CCID_OPTION = 128

OPTION_NAMES = {
    DCCP_OPTION_PADDING:            "nop",
    DCCP_OPTION_MANDATORY:          "mandatory",
    DCCP_OPTION_SLOW_RECEIVER:      "slowreceiver",
    DCCP_OPTION_CHANGE_L:           "change_l",
    DCCP_OPTION_CONFIRM_L:          "confirm_l",
    DCCP_OPTION_CHANGE_R:           "change_r",
    DCCP_OPTION_CONFIRM_R:          "confirm_r",
    DCCP_OPTION_INIT_COOKIE:        "initcookie",
    DCCP_OPTION_NDP_COUNT:          "ndp_count",
    DCCP_OPTION_ACK_VECTOR_NONCE_0: "ack_vector0",
    DCCP_OPTION_ACK_VECTOR_NONCE_1: "ack_vector1",
    DCCP_OPTION_DATA_DROPPED:       "data_dropped",
    DCCP_OPTION_TIMESTAMP:          "timestamp",
    DCCP_OPTION_TIMESTAMP_ECHO:     "timestamp_echo",
    DCCP_OPTION_ELAPSED_TIME:       "elapsed_time",
    DCCP_OPTION_DATA_CHECKSUM:      "data_checksum",
}

# Feature numbers carried by Change/Confirm (RFC 4340 6.4)
FEATURE_NAMES = {
    0: "reserved",
    1: "ccid",
    2: "allow_short_seqno",
    3: "sequence_window",
    4: "ecn_incapable",
    5: "ack_ratio",
    6: "send_ack_vector",
    7: "send_ndp_count",
    8: "minimum_checksum_coverage",
    9: "check_data_checksum",
}

SINGLE_BYTE_OPTIONS = (
    DCCP_OPTION_PADDING,
    DCCP_OPTION_MANDATORY,
    DCCP_OPTION_SLOW_RECEIVER,
)
FEATURE_OPTIONS = (
    DCCP_OPTION_CHANGE_L,
    DCCP_OPTION_CONFIRM_L,
    DCCP_OPTION_CHANGE_R,
    DCCP_OPTION_CONFIRM_R,
)
OPAQUE_OPTIONS = (
    DCCP_OPTION_INIT_COOKIE,
    DCCP_OPTION_ACK_VECTOR_NONCE_0,
    DCCP_OPTION_ACK_VECTOR_NONCE_1,
    DCCP_OPTION_DATA_DROPPED,
    DCCP_OPTION_DATA_CHECKSUM,
)


def option_label(option_type):
    if option_type >= FIRST_CCID_OPTION:
        return f"CCID option {option_type}"
    return tok2str(OPTION_NAMES, "option-type-%u", option_type)


# ==================================================================================
# DATA MODEL
# ==================================================================================

@dataclass(frozen=True)
class Option:
    option_type: int
    option_length: int
    payload: bytes = b""

    @property
    def name(self):
        return option_label(self.option_type)

    @property
    def is_ccid_specific(self):
        return self.option_type >= FIRST_CCID_OPTION

    def describe(self) -> str:
        """
        Value part of the option as printed after its name, including the
        leading space ("" for the single-byte options).
        """
        t = self.option_type
        p = self.payload

        if self.is_ccid_specific:
            if len(p) in (2, 4):
                return f" {int.from_bytes(p, 'big')}"
            return f" {hex_string(p)}"

        if t in SINGLE_BYTE_OPTIONS:
            return ""

        if t in FEATURE_OPTIONS:
            feature = tok2str(FEATURE_NAMES, "feature-number-%u (invalid)", p[0])
            return f" {feature}" + "".join(f" {v}" for v in p[1:])

        if t in OPAQUE_OPTIONS:
            return f" {hex_string(p)}"

        if t == DCCP_OPTION_NDP_COUNT:
            return "".join(f" {v}" for v in p)

        if t == DCCP_OPTION_TIMESTAMP or t == DCCP_OPTION_ELAPSED_TIME:
            return f" {int.from_bytes(p, 'big')}"

        if t == DCCP_OPTION_TIMESTAMP_ECHO:
            echo = int.from_bytes(p[:4], 'big')
            if len(p) > 4:
                return f" {echo} (elapsed time {int.from_bytes(p[4:], 'big')})"
            return f" {echo}"

        return ""

    def __str__(self):
        return self.name + self.describe()


# ==================================================================================
# DECODER
# ==================================================================================

def _check_option_length(option_type, optlen):
    """Per-type length rules. Raises InvalidOption; unknown types included."""
    if option_type in (DCCP_OPTION_CHANGE_L, DCCP_OPTION_CHANGE_R):
        check_length("optlen", optlen, "<", 4, InvalidOption)

    elif option_type in (DCCP_OPTION_CONFIRM_L, DCCP_OPTION_CONFIRM_R,
                         DCCP_OPTION_INIT_COOKIE, DCCP_OPTION_ACK_VECTOR_NONCE_0,
                         DCCP_OPTION_ACK_VECTOR_NONCE_1, DCCP_OPTION_DATA_DROPPED):
        check_length("optlen", optlen, "<", 3, InvalidOption)

    elif option_type == DCCP_OPTION_NDP_COUNT:
        check_length("optlen", optlen, "<", 3, InvalidOption)
        check_length("optlen", optlen, ">", 8, InvalidOption)

    elif option_type in (DCCP_OPTION_TIMESTAMP, DCCP_OPTION_DATA_CHECKSUM):
        check_length("optlen", optlen, "!=", 6, InvalidOption)

    elif option_type == DCCP_OPTION_TIMESTAMP_ECHO:
        if optlen not in (6, 8, 10):
            raise InvalidOption("optlen != 6 or 8 or 10")

    elif option_type == DCCP_OPTION_ELAPSED_TIME:
        if optlen not in (4, 6):
            raise InvalidOption("optlen != 4 or 6")

    elif option_type not in SINGLE_BYTE_OPTIONS:
        # reserved 3-31 and 45-127
        raise InvalidOption()


def decode_one_option(cursor: BinaryReader, remaining_budget: int):
    """
    Decodes the option at the cursor.

    Single-byte options (types 0-31):
      [Type: 1]
    Everything else:
      [Type: 1] [Length: 1] [Payload: Length - 2]

    Returns (Option, bytes_consumed) and leaves the cursor just past the
    option. Raises Truncated when the option is longer than the budget,
    InvalidOption for reserved types or bad lengths, CaptureTruncated when
    the capture ends inside it.
    """
    check_length("remaining length", remaining_budget, "<", 1)

    option_type = cursor.read_uint8()
    if option_type >= FIRST_LENGTH_OPTION:
        optlen = cursor.read_uint8()
        check_length("optlen", optlen, "<", 2, InvalidOption)
    else:
        optlen = 1

    check_length("remaining length", remaining_budget, "<", optlen, Truncated)

    if option_type < FIRST_CCID_OPTION:
        _check_option_length(option_type, optlen)

    payload = cursor.read_bytes(optlen - 2) if optlen > 1 else b""

    return Option(option_type, optlen, payload), optlen


def decode_options(reader: BinaryReader, budget: int):
    """
    Decodes the whole option area: 'budget' bytes at the reader's offset.
    Returns the options in wire order. Raises on the first bad option.
    """
    cursor = reader.window(budget)
    options = []
    while cursor.remaining() > 0:
        option, _ = decode_one_option(cursor, cursor.remaining())
        options.append(option)
    return options
