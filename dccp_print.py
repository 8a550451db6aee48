# dccp_print - Render one DCCP packet as a single line of text
import io
from dataclasses import dataclass, field

from dccp_checksum import verify_checksum
from dccp_header import (
    BASIC_HEADER_LEN,
    DCCP_PKT_DATA,
    DCCP_PKT_REQUEST,
    PACKET_TYPE_NAMES,
    RESET_CODE_NAMES,
    RequestExtension,
    ResetExtension,
    ResponseExtension,
    checksum_coverage,
    decode_generic_header,
    decode_type_extension,
    options_budget,
)
from dccp_options import decode_one_option, option_label
from dccp_utils import BinaryReader, CaptureTruncated, DccpError, check_length, format_address, tok2str

# ==================================================================================
# CONFIGURATION & OUTCOME
# ==================================================================================

PROTOCOL_NAME = "DCCP"

INVALID_MARKER = " (invalid)"
TRUNCATED_MARKER = " [|dccp]"

# Terminal states
DONE = "done"
QUIET = "quiet"
INVALID = "invalid"
TRUNCATED = "truncated"


@dataclass(frozen=True)
class DccpConfig:
    """
    quiet:   print only the payload byte count after the protocol name
    verbose: 0 = minimal, 1 = + CCVal/CsCov/checksum, 2+ = + sequence number and options
    """
    quiet: bool = False
    verbose: int = 0


DEFAULT_CONFIG = DccpConfig()


@dataclass
class DccpOutcome:
    state: str = DONE
    header: object = None
    extension: object = None
    fixed_length: int = None
    options: list = field(default_factory=list)
    payload_length: int = None
    checksum_ok: bool = None
    error: DccpError = None

    @property
    def ok(self):
        return self.state in (DONE, QUIET)


# ==================================================================================
# RENDERER
# ==================================================================================

def _print_prefix(out, header, ip):
    if ip is not None:
        out.write(
            f"{format_address(ip.src)}.{header.source_port} > "
            f"{format_address(ip.dst)}.{header.dest_port}: "
        )
    else:
        out.write(f"{header.source_port} > {header.dest_port}: ")
    out.write(PROTOCOL_NAME)


def _print_checksum(out, reader, header, length, ip, outcome):
    """
    Verdict only when the whole packet was captured; the value still prints
    without an enclosing IP header, there is just nothing to check it against.
    """
    if not reader.captured(length, at=0):
        return
    out.write(f", cksum 0x{header.checksum:04x}")
    if ip is None:
        return

    coverage = checksum_coverage(header, length)
    ok, expected = verify_checksum(ip, reader.data, length, coverage, header.checksum)
    outcome.checksum_ok = ok
    if ok:
        out.write(" (correct)")
    else:
        out.write(f" (incorrect -> 0x{expected:04x})")


def _print_options(out, reader, fixed_len, budget, outcome):
    """
    Walks the option area, printing each option as it is decoded.
    The name goes out before the option is validated, so a bad option
    still leaves its name in front of the invalid marker.
    """
    reader.position(fixed_len)
    cursor = reader.window(budget)

    out.write(" <")
    first = True
    while cursor.remaining() > 0:
        if not first:
            out.write(", ")
        first = False

        out.write(option_label(cursor.peek_uint8()))
        option, _ = decode_one_option(cursor, cursor.remaining())
        out.write(option.describe())
        outcome.options.append(option)
    out.write(">")


def _render(out, buffer, length, ip, config, outcome):
    reader = BinaryReader(buffer)

    check_length("length", length, "<", BASIC_HEADER_LEN)
    header = decode_generic_header(reader, length)
    outcome.header = header

    _print_prefix(out, header, ip)

    if config.quiet:
        check_length("length", length, "<", header.header_length)
        outcome.payload_length = length - header.header_length
        out.write(f" {outcome.payload_length}")
        outcome.state = QUIET
        return

    if config.verbose:
        out.write(f" (CCVal {header.ccval}, CsCov {header.cscov}")
        _print_checksum(out, reader, header, length, ip, outcome)
        out.write(")")

    out.write(" " + tok2str(PACKET_TYPE_NAMES, "packet-type-%u", header.packet_type))

    extension, fixed_len = decode_type_extension(reader, header, length)
    outcome.extension = extension
    outcome.fixed_length = fixed_len

    if isinstance(extension, (RequestExtension, ResponseExtension)):
        out.write(f" (service={extension.service_code})")
    elif isinstance(extension, ResetExtension):
        code = tok2str(RESET_CODE_NAMES, "reset-code-%u (invalid)", extension.reset_code)
        out.write(f" (code={code})")

    if header.packet_type not in (DCCP_PKT_DATA, DCCP_PKT_REQUEST):
        out.write(f" (ack={extension.ack_number})")

    if config.verbose < 2:
        return

    out.write(f" seq {header.sequence_number}")

    budget = options_budget(header, fixed_len)
    if budget > 0:
        _print_options(out, reader, fixed_len, budget, outcome)


def dccp_print(out, buffer, length, ip=None, config=DEFAULT_CONFIG):
    """
    Renders one DCCP packet to 'out' (anything with write()).

    buffer: captured bytes starting at the DCCP header, possibly shorter
            than 'length' when the capture was cut by the snap length
    length: DCCP length claimed by the enclosing IP header
    ip:     enclosing dpkt IP/IP6 header, used for addresses and the
            pseudo-header checksum; None prints ports only

    Output is written as decoding goes and is not rolled back: a malformed
    packet leaves whatever was printed, followed by a marker. Returns a
    DccpOutcome describing where decoding stopped.
    """
    outcome = DccpOutcome()
    try:
        _render(out, buffer, length, ip, config, outcome)
    except CaptureTruncated as e:
        out.write(TRUNCATED_MARKER)
        outcome.state = TRUNCATED
        outcome.error = e
    except DccpError as e:
        if e.detail:
            out.write(f" [{e.detail}]")
        out.write(INVALID_MARKER)
        outcome.state = INVALID
        outcome.error = e
    return outcome


def format_dccp(buffer, length, ip=None, config=DEFAULT_CONFIG):
    """Same as dccp_print() but returns (text, outcome)."""
    out = io.StringIO()
    outcome = dccp_print(out, buffer, length, ip, config)
    return out.getvalue(), outcome
