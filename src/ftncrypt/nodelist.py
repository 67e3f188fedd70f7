# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
FTS-5000 nodelist.

   The nodelist is a text file with one entry per line. Each entry is a
   list of comma separated fields:

       Keyword,Number,Name,Location,Sysop,Phone,Speed[,Flag...]

   The keyword defines the role of the entry and how the number is to be
   interpreted. A Zone entry starts a new zone (its number is both the
   zone and the net number of the zone coordinator), a Region or a Host
   entry starts a new net within the current zone, while the other entries
   (Hub, Pvt, Hold, Down or an empty keyword) describe nodes within the
   current net. Lines starting with a semicolon are comments and the file
   may end with an EOF (^Z) character.

   The flags describe the capabilities of the system. Userflags follow a
   U flag and are used among others to advertise the encryption method
   supported by a node (ENCRYPT:<method>).

"""

import glob
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Protocol

from .address import DEFAULT_DOMAIN, Address
from .exceptions import NotFoundError, ValidationError

__all__ = 'Directory', 'NodeRecord', 'Nodelist'


log = logging.getLogger(__name__)


EOF = '\x1a'

ZONE_KEYWORDS = frozenset({'Zone'})
NET_KEYWORDS = frozenset({'Region', 'Host'})
NODE_KEYWORDS = frozenset({'', 'Hub', 'Pvt', 'Hold', 'Down'})


@dataclass(frozen=True, kw_only=True)
class NodeRecord:
    address: Address
    keyword: str
    name: str
    location: str
    sysop: str
    phone: str
    speed: str
    flags: tuple[str, ...] = ()


class Directory(Protocol):
    def lookup(self, address: Address) -> NodeRecord: ...


class Nodelist:
    """A nodelist loaded from a file, indexed by node address"""

    def __init__(self, path: str | PathLike[str], *, domain: str = DEFAULT_DOMAIN, encoding: str = 'cp437') -> None:
        self.path = self.find(path)
        self.domain = domain
        self.encoding = encoding
        with self.path.open(encoding=encoding, errors='replace', newline='') as file:
            self._records = self.parse(file, domain=domain)
        log.debug('Loaded %d nodes from %s', len(self._records), self.path)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, Address) and self._key(address) in self._records

    @staticmethod
    def find(path: str | PathLike[str]) -> Path:
        """Return the newest file that matches path, which may be a glob pattern like NODELIST.*"""
        pattern = str(Path(path).expanduser())
        candidates = [Path(name) for name in glob.glob(pattern) if Path(name).is_file()]  # noqa: PTH207
        if not candidates:
            raise FileNotFoundError(f'No nodelist found matching {str(path)!r}')
        return max(candidates, key=lambda candidate: (candidate.stat().st_mtime, candidate.name))

    @staticmethod
    def _key(address: Address) -> tuple[int, int, int]:
        return address.zone, address.net, address.node

    @classmethod
    def parse(cls, lines: Iterable[str], *, domain: str = DEFAULT_DOMAIN) -> Mapping[tuple[int, int, int], NodeRecord]:
        records: dict[tuple[int, int, int], NodeRecord] = {}
        zone: int | None = None
        net: int | None = None
        for number, line in enumerate(lines, start=1):
            line = line.rstrip('\r\n').rstrip(EOF)  # noqa: PLW2901
            if not line or line.startswith(';'):
                continue
            fields = line.split(',')
            if len(fields) < 7:  # noqa: PLR2004
                log.warning('Skipping malformed nodelist line %d: %r', number, line)
                continue
            keyword, entry_number, name, location, sysop, phone, speed, *flags = fields
            try:
                entry = int(entry_number)
            except ValueError:
                log.warning('Skipping nodelist line %d with invalid number: %r', number, entry_number)
                continue
            if keyword in ZONE_KEYWORDS:
                zone = net = entry
                node = 0
            elif keyword in NET_KEYWORDS:
                net = entry
                node = 0
            elif keyword in NODE_KEYWORDS:
                node = entry
            else:
                log.warning('Skipping nodelist line %d with unknown keyword: %r', number, keyword)
                continue
            if zone is None or net is None:
                log.warning('Skipping nodelist line %d that precedes the first zone entry', number)
                continue
            try:
                address = Address(zone=zone, net=net, node=node, domain=domain)
            except ValidationError as exc:
                log.warning('Skipping nodelist line %d with an invalid address: %s', number, exc)
                continue
            records[cls._key(address)] = NodeRecord(
                address=address,
                keyword=keyword,
                name=name,
                location=location,
                sysop=sysop,
                phone=phone,
                speed=speed,
                flags=tuple(flags),
            )
        return records

    def lookup(self, address: Address) -> NodeRecord:
        if address.is_point:
            raise NotFoundError(f'Points are not listed in the nodelist: {address}')
        try:
            return self._records[self._key(address)]
        except KeyError:
            raise NotFoundError(f'Node {address} not found in the nodelist') from None
