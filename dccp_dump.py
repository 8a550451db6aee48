# dccp_dump - Parse pcap network capture and print DCCP packets
import argparse
import sys

import dpkt

from dccp_checksum import IPPROTO_DCCP
from dccp_print import INVALID, TRUNCATED, DccpConfig, format_dccp

# ==================================================================================
# CONFIGURATION & GLOBALS
# ==================================================================================

PCAPNG_MAGIC = b"\x0a\x0d\x0d\x0a"

# Link types carrying a bare IP packet (DLT_RAW on the various platforms, LINKTYPE_RAW)
RAW_LINKTYPES = (12, 14, 101)


class DumpStats:
    def __init__(self):
        self.frames = 0
        self.dccp = 0
        self.invalid = 0
        self.truncated = 0
        self.skipped = 0


# ==================================================================================
# CAPTURE HANDLING
# ==================================================================================

def open_capture(f):
    """pcapng or classic pcap, picked by the first four bytes."""
    magic = f.read(4)
    f.seek(0)
    if magic == PCAPNG_MAGIC:
        return dpkt.pcapng.Reader(f)
    return dpkt.pcap.Reader(f)


def extract_ip(buf, linktype):
    """Returns the dpkt IP/IP6 layer of a frame, or None."""
    if linktype in RAW_LINKTYPES:
        if not buf:
            return None
        if buf[0] >> 4 == 6:
            return dpkt.ip6.IP6(buf)
        return dpkt.ip.IP(buf)

    eth = dpkt.ethernet.Ethernet(buf)
    if isinstance(eth.data, (dpkt.ip.IP, dpkt.ip6.IP6)):
        return eth.data
    return None


def dccp_segment(ip):
    """
    Returns (captured_bytes, claimed_length) for a DCCP-carrying IP packet,
    None for anything else. The claimed length comes from the IP header,
    so it can exceed what the snap length let through.
    """
    if ip.p != IPPROTO_DCCP:
        return None

    data = ip.data if isinstance(ip.data, bytes) else bytes(ip.data)

    if ip.v == 6:
        ext_len = sum(h.length for h in getattr(ip, "all_extension_headers", []))
        return data, ip.plen - ext_len

    # only the first fragment carries the DCCP header
    if ip.off & dpkt.ip.IP_OFFMASK:
        return None
    return data, ip.len - ip.hl * 4


def dump_packet(ts, ip, config, stats):
    segment = dccp_segment(ip)
    if segment is None:
        stats.skipped += 1
        return

    data, length = segment
    stats.dccp += 1

    text, outcome = format_dccp(data, length, ip, config)
    if outcome.state == INVALID:
        stats.invalid += 1
    elif outcome.state == TRUNCATED:
        stats.truncated += 1

    family = "IP6" if ip.v == 6 else "IP"
    print(f"{ts:.6f} {family} {text}")


def dump_capture(f, config, count=None):
    stats = DumpStats()
    capture = open_capture(f)
    linktype = capture.datalink()

    for ts, buf in capture:
        if count is not None and stats.dccp >= count:
            break
        stats.frames += 1
        try:
            ip = extract_ip(buf, linktype)
        except (dpkt.dpkt.UnpackError, IndexError) as e:
            print(f"[DccpDump] frame {stats.frames}: undecodable ({e.__class__.__name__})")
            stats.skipped += 1
            continue
        if ip is None:
            stats.skipped += 1
            continue
        dump_packet(ts, ip, config, stats)

    return stats


def main(argv=None):
    # --- ARGUMENT PARSING ---
    parser = argparse.ArgumentParser(description="DCCP Packet Dumper")
    parser.add_argument("filename", help="Path to the .pcap or .pcapng file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Print only the payload length of each packet")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="-v adds CCVal/CsCov/checksum, -vv adds sequence numbers and options")
    parser.add_argument("-c", "--count", type=int, default=None, help="Stop after this many DCCP packets")

    args = parser.parse_args(argv)
    config = DccpConfig(quiet=args.quiet, verbose=args.verbose)

    print(f"Decoding {args.filename}...")

    try:
        with open(args.filename, 'rb') as f:
            stats = dump_capture(f, config, args.count)
    except FileNotFoundError:
        print(f"Error: File '{args.filename}' not found.")
        return 1
    except (ValueError, dpkt.dpkt.Error) as e:
        print(f"Error: {e}")
        return 1

    print(
        f"[DccpDump] {stats.frames} frames, {stats.dccp} DCCP packets "
        f"({stats.invalid} invalid, {stats.truncated} truncated)"
    )
    return 0


if __name__ == '__main__':
    # avoid string decode errors
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="backslashreplace")
    sys.exit(main())
