# dccp_checksum - Verify the DCCP checksum against the IPv4/IPv6 pseudo-header (RFC 4340 9.1)
import struct

from dpkt.dpkt import in_cksum_add, in_cksum_done

IPPROTO_DCCP = 33

U16_MASK = 0xFFFF


def u16(x: int) -> int:
    return x & U16_MASK


def pseudo_header(ip, length: int) -> bytes:
    """
    IPv4: src(4) dst(4) zero(1) proto(1) length(2)
    IPv6: src(16) dst(16) length(4) zero(3) next-header(1)

    'length' is the full DCCP length even when CsCov covers less.
    """
    if ip.v == 6:
        return struct.pack("!16s16sI3xB", ip.src, ip.dst, length, IPPROTO_DCCP)
    return struct.pack("!4s4sxBH", ip.src, ip.dst, IPPROTO_DCCP, length)


def dccp_cksum(ip, packet, length: int, coverage: int) -> int:
    """
    Internet checksum of pseudo-header + the first 'coverage' packet bytes,
    transmitted checksum field included. 0 means the packet checks out.
    """
    s = in_cksum_add(0, pseudo_header(ip, length))
    s = in_cksum_add(s, bytes(packet[:coverage]))
    return in_cksum_done(s)


def in_cksum_shouldbe(sum_: int, computed_sum: int) -> int:
    """
    Given the transmitted checksum and the checksum computed over the
    packet with it in place, the value the field should have held.
    """
    shouldbe = sum_ + computed_sum
    shouldbe = (shouldbe & U16_MASK) + (shouldbe >> 16)
    shouldbe = (shouldbe & U16_MASK) + (shouldbe >> 16)
    return u16(shouldbe)


def verify_checksum(ip, packet, length: int, coverage: int, transmitted: int):
    """Returns (ok, expected_value)."""
    computed = dccp_cksum(ip, packet, length, coverage)
    if computed == 0:
        return True, transmitted
    return False, in_cksum_shouldbe(transmitted, computed)
