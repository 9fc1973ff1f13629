"""
Datacenter IP detection — hosting-provider CIDR ranges.

A visit coming from a cloud/hosting address block is a proxy signal for
non-residential (likely automated) traffic. It is one bot signal among
several, never a verdict on its own.

Ranges are parsed once at import into an immutable RangeTable, sorted by
start address. Lookups are read-only, so the table is shared freely.

IPv4 only. Anything that doesn't parse as a dotted quad is "not datacenter".
"""

from bisect import bisect_right
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()

# Published provider blocks (major ones only, not a full GeoIP database)
DATACENTER_CIDRS: dict[str, tuple[str, ...]] = {
    "AWS": (
        "3.0.0.0/8",
        "13.32.0.0/12",
        "18.64.0.0/10",
        "35.80.0.0/12",
        "44.192.0.0/10",
        "52.0.0.0/8",
        "54.64.0.0/10",
        "99.77.0.0/16",
        "100.20.0.0/14",
        "108.128.0.0/11",
        "176.32.96.0/19",
    ),
    "GCP": (
        "34.64.0.0/10",
        "35.184.0.0/13",
        "35.192.0.0/12",
        "35.208.0.0/12",
        "35.224.0.0/12",
        "35.240.0.0/13",
        "104.154.0.0/15",
        "104.196.0.0/14",
        "107.167.160.0/19",
        "107.178.192.0/18",
        "108.59.80.0/20",
        "130.211.0.0/16",
        "146.148.0.0/16",
        "162.216.148.0/22",
        "162.222.176.0/20",
        "173.255.112.0/20",
        "199.192.112.0/20",
        "199.223.232.0/21",
    ),
    "Azure": (
        "13.64.0.0/10",
        "20.0.0.0/8",
        "23.96.0.0/13",
        "40.64.0.0/10",
        "51.4.0.0/14",
        "51.8.0.0/14",
        "51.104.0.0/13",
        "51.124.0.0/14",
        "52.96.0.0/12",
        "52.112.0.0/12",
        "52.160.0.0/11",
        "65.52.0.0/14",
        "70.37.0.0/17",
        "70.37.128.0/17",
        "104.40.0.0/13",
        "168.61.0.0/16",
        "168.62.0.0/15",
    ),
    "DigitalOcean": (
        "64.225.0.0/16",
        "67.205.128.0/17",
        "68.183.0.0/16",
        "104.131.0.0/16",
        "104.236.0.0/16",
        "137.184.0.0/14",
        "138.68.0.0/15",
        "138.197.0.0/16",
        "139.59.0.0/16",
        "142.93.0.0/16",
        "143.110.0.0/16",
        "143.198.0.0/16",
        "144.126.192.0/18",
        "157.230.0.0/15",
        "159.65.0.0/16",
        "159.89.0.0/16",
        "159.203.0.0/16",
        "161.35.0.0/16",
        "162.243.0.0/16",
        "163.47.8.0/21",
        "165.22.0.0/15",
        "165.227.0.0/16",
        "167.99.0.0/16",
        "167.172.0.0/14",
        "174.138.0.0/16",
        "178.128.0.0/14",
        "188.166.0.0/15",
        "192.81.208.0/20",
        "192.241.128.0/17",
        "198.199.64.0/18",
        "206.189.0.0/16",
        "207.154.192.0/18",
    ),
    "Linode": (
        "45.33.0.0/16",
        "45.56.64.0/18",
        "45.79.0.0/16",
        "50.116.0.0/18",
        "66.175.208.0/20",
        "66.228.32.0/19",
        "69.164.192.0/18",
        "72.14.176.0/20",
        "74.207.224.0/19",
        "96.126.96.0/19",
        "97.107.128.0/17",
        "139.162.0.0/16",
        "170.187.128.0/17",
        "172.104.0.0/15",
        "173.255.192.0/18",
        "178.79.128.0/17",
        "192.155.80.0/20",
        "198.58.96.0/19",
        "212.71.232.0/21",
    ),
    "Vultr": (
        "45.32.0.0/15",
        "45.63.0.0/16",
        "45.76.0.0/15",
        "64.156.0.0/14",
        "66.42.32.0/19",
        "78.141.192.0/18",
        "95.179.128.0/17",
        "104.156.224.0/19",
        "108.61.64.0/18",
        "136.244.64.0/18",
        "140.82.0.0/17",
        "144.202.0.0/16",
        "149.28.0.0/16",
        "155.138.128.0/17",
        "185.231.80.0/22",
        "192.248.144.0/20",
        "207.148.64.0/18",
        "208.167.224.0/19",
        "216.128.128.0/17",
        "217.163.0.0/17",
    ),
    "OVH": (
        "5.135.0.0/16",
        "5.196.0.0/14",
        "37.59.0.0/16",
        "37.187.0.0/16",
        "46.105.0.0/16",
        "51.38.0.0/15",
        "51.68.0.0/14",
        "51.75.0.0/16",
        "51.77.0.0/16",
        "51.79.0.0/16",
        "51.89.0.0/16",
        "51.91.0.0/16",
        "51.210.0.0/15",
        "54.36.0.0/14",
        "54.38.0.0/15",
        "79.137.0.0/17",
        "87.98.128.0/17",
        "91.121.0.0/16",
        "92.222.0.0/15",
        "135.125.0.0/16",
        "137.74.0.0/16",
        "139.99.0.0/16",
        "142.44.128.0/17",
        "145.239.0.0/16",
        "147.135.0.0/16",
        "149.56.0.0/16",
        "151.80.0.0/14",
        "158.69.0.0/16",
        "167.114.0.0/16",
        "176.31.0.0/16",
        "178.32.0.0/15",
        "185.228.16.0/22",
        "188.165.0.0/16",
        "192.95.0.0/16",
        "193.70.0.0/15",
        "198.27.64.0/18",
        "198.50.128.0/17",
        "198.100.144.0/20",
        "213.32.0.0/16",
        "213.186.32.0/19",
        "213.251.128.0/17",
    ),
    "Hetzner": (
        "5.9.0.0/16",
        "23.88.0.0/15",
        "49.12.0.0/14",
        "65.108.0.0/15",
        "65.21.0.0/16",
        "78.46.0.0/15",
        "85.10.192.0/18",
        "88.99.0.0/16",
        "88.198.0.0/16",
        "94.130.0.0/16",
        "95.216.0.0/15",
        "116.202.0.0/15",
        "116.203.0.0/16",
        "128.140.0.0/15",
        "135.181.0.0/16",
        "136.243.0.0/16",
        "138.201.0.0/16",
        "142.132.128.0/17",
        "144.76.0.0/16",
        "148.251.0.0/16",
        "157.90.0.0/16",
        "159.69.0.0/16",
        "167.233.0.0/16",
        "168.119.0.0/16",
        "176.9.0.0/16",
        "178.63.0.0/16",
        "188.40.0.0/16",
        "195.201.0.0/16",
        "213.133.96.0/19",
        "213.239.192.0/18",
    ),
}

_MAX_IPV4 = 0xFFFFFFFF


@dataclass(frozen=True)
class IPRange:
    start: int
    end: int
    provider: str

    def __contains__(self, ip_num: int) -> bool:
        return self.start <= ip_num <= self.end


@dataclass(frozen=True)
class DatacenterCheck:
    is_datacenter: bool
    provider: str | None = None

    def __bool__(self) -> bool:
        return self.is_datacenter


NOT_DATACENTER = DatacenterCheck(is_datacenter=False, provider=None)


def ip_to_int(ip: str) -> int | None:
    """Dotted quad → unsigned 32-bit int (big-endian). None if malformed."""
    parts = ip.split(".")
    if len(parts) != 4:
        return None

    result = 0
    for part in parts:
        # isascii() keeps out unicode digits that int() would accept
        if not part or not part.isascii() or not part.isdigit():
            return None
        octet = int(part)
        if octet > 255:
            return None
        result = (result << 8) | octet
    return result


def parse_cidr(cidr: str) -> tuple[int, int] | None:
    """'a.b.c.d/n' → closed interval (start, end). None if malformed."""
    ip, sep, mask_str = cidr.partition("/")
    if not sep or not ip or not mask_str:
        return None

    ip_num = ip_to_int(ip)
    if ip_num is None:
        return None

    if not mask_str.isascii() or not mask_str.isdigit():
        return None
    prefix = int(mask_str)
    if prefix > 32:
        return None

    host_bits = 32 - prefix
    start = ip_num & ~((1 << host_bits) - 1) & _MAX_IPV4
    end = start + (1 << host_bits) - 1
    return start, end


class RangeTable:
    """Immutable, start-sorted table of provider IP ranges."""

    def __init__(self, cidrs_by_provider: dict[str, tuple[str, ...] | list[str]]):
        ranges: list[IPRange] = []
        for provider, cidrs in cidrs_by_provider.items():
            for cidr in cidrs:
                parsed = parse_cidr(cidr)
                if parsed is None:
                    # Lenient: the table is a trusted literal, skip typos
                    logger.debug("datacenter_cidr_skipped", cidr=cidr, provider=provider)
                    continue
                ranges.append(IPRange(start=parsed[0], end=parsed[1], provider=provider))

        # Stable sort: equal starts keep table order
        ranges.sort(key=lambda r: r.start)
        self._ranges: tuple[IPRange, ...] = tuple(ranges)
        self._starts: tuple[int, ...] = tuple(r.start for r in ranges)

    @property
    def ranges(self) -> tuple[IPRange, ...]:
        return self._ranges

    def __len__(self) -> int:
        return len(self._ranges)

    def lookup(self, ip_num: int) -> IPRange | None:
        """First range (ascending start) containing ip_num."""
        # Ranges past this index start above ip_num and can't contain it
        upper = bisect_right(self._starts, ip_num)
        for i in range(upper):
            candidate = self._ranges[i]
            if ip_num <= candidate.end:
                return candidate
        return None

    def check(self, ip: str) -> DatacenterCheck:
        ip_num = ip_to_int(ip)
        if ip_num is None:
            return NOT_DATACENTER

        match = self.lookup(ip_num)
        if match is None:
            return NOT_DATACENTER
        return DatacenterCheck(is_datacenter=True, provider=match.provider)


# Built once at import, read-only afterwards
DATACENTER_TABLE = RangeTable(DATACENTER_CIDRS)


def is_datacenter_ip(ip: str, table: RangeTable | None = None) -> DatacenterCheck:
    """Check an IPv4 address against known hosting-provider ranges."""
    if table is None:
        table = DATACENTER_TABLE
    return table.check(ip)
