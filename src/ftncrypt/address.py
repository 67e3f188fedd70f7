# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
FTN addresses.

   An FTN address identifies a system in the network by its zone, net and
   node numbers, optionally followed by a point number (for systems that
   are not listed in the nodelist but are served by a listed boss node) and
   a domain that names the network:

       zone:net/node[.point][@domain]

   For interoperability with internet mail, an FTN address also has a fully
   qualified domain name form, which is built from its components:

       [p<point>.]f<node>.n<net>.z<zone>.<domain>.net

"""

import re
from dataclasses import dataclass, replace
from functools import cached_property
from typing import ClassVar, Self

import idna

from .exceptions import ValidationError

__all__ = 'DEFAULT_DOMAIN', 'Address'


DEFAULT_DOMAIN = 'fidonet'


@dataclass(frozen=True)
class Address:
    zone: int
    net: int
    node: int
    point: int = 0
    domain: str = DEFAULT_DOMAIN

    max_number: ClassVar[int] = 32767

    _pattern: ClassVar[re.Pattern[str]] = re.compile(r'(?P<zone>\d+):(?P<net>\d+)/(?P<node>\d+)(?:\.(?P<point>\d+))?(?:@(?P<domain>[\w.-]+))?')

    def __post_init__(self) -> None:
        if not 1 <= self.zone <= self.max_number:
            raise ValidationError(f'Invalid zone number: {self.zone}')
        for name in ('net', 'node', 'point'):
            if not 0 <= getattr(self, name) <= self.max_number:
                raise ValidationError(f'Invalid {name} number: {getattr(self, name)}')
        if not self.domain:
            raise ValidationError('The address domain cannot be empty')
        object.__setattr__(self, 'domain', self.domain.lower())
        try:
            idna.encode(self.domain, uts46=True)
        except idna.IDNAError as exc:
            raise ValidationError(f'Invalid address domain {self.domain!r}: {exc}') from exc

    def __str__(self) -> str:
        address = f'{self.zone}:{self.net}/{self.node}'
        if self.point:
            address += f'.{self.point}'
        if self.domain != DEFAULT_DOMAIN:
            address += f'@{self.domain}'
        return address

    @classmethod
    def parse(cls, value: str | Self) -> Self:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValidationError(f'FTN address must be a string, not {value.__class__.__qualname__}')
        match = cls._pattern.fullmatch(value.strip())
        if match is None:
            raise ValidationError(f'Invalid FTN address: {value!r}')
        return cls(
            zone=int(match['zone']),
            net=int(match['net']),
            node=int(match['node']),
            point=int(match['point'] or 0),
            domain=match['domain'] or DEFAULT_DOMAIN,
        )

    @property
    def is_point(self) -> bool:
        return self.point != 0

    @property
    def node_address(self) -> Self:
        """The address of the node itself (the boss node for a point)"""
        return replace(self, point=0) if self.point else self

    @cached_property
    def fqdn(self) -> str:
        labels = [f'f{self.node}', f'n{self.net}', f'z{self.zone}', self.domain, 'net']
        if self.point:
            labels.insert(0, f'p{self.point}')
        return idna.encode('.'.join(labels), uts46=True).decode('ascii')
