# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

# Nodes advertise their encryption support with the ENCRYPT:<method> nodelist
# userflag (FSC-0073), e.g. "U,ENCRYPT:PGP5". A node is encryption capable if
# it has the flag and the method is one of the known encryption methods. The
# messages for such a node are encrypted for the e-mail address built from a
# configurable user name and the FQDN of the node (sysop@f1.n5020.z2.fidonet.net).

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import ClassVar, Final

from .address import Address
from .exceptions import UnsupportedMethodError, ValidationError
from .nodelist import Directory
from .python.types import StringEnum

__all__ = 'ENCRYPTION_FLAG', 'DEFAULT_USERNAME', 'EncryptionMethod', 'NodeCapability', 'CapabilityResolver', 'parse_flags'  # noqa: RUF022


log = logging.getLogger(__name__)


ENCRYPTION_FLAG: Final = 'ENCRYPT'
DEFAULT_USERNAME: Final = 'sysop'


class EncryptionMethod(StringEnum):
    PGP2 = 'PGP2'
    PGP5 = 'PGP5'
    GNUPG = 'GnuPG'


@dataclass(frozen=True, kw_only=True)
class NodeCapability:
    destination: str
    method: EncryptionMethod | None = None

    @property
    def encryption_capable(self) -> bool:
        return self.method is not None


def parse_flags(flags: Iterable[str]) -> dict[str, str | bool]:
    """Map the nodelist flags to their values (True for flags without a value, last one wins)"""
    result: dict[str, str | bool] = {}
    for flag in flags:
        flag = flag.translate({ord('\r'): None, ord('\n'): None})  # noqa: PLW2901
        name, separator, value = flag.partition(':')
        result[name] = value if separator else True
    return result


class CapabilityResolver:
    username_pattern: ClassVar[re.Pattern[str]] = re.compile(r'\w+(?:[.-]\w+)*')

    def __init__(self, directory: Directory, *, username: str = DEFAULT_USERNAME) -> None:
        if not isinstance(username, str) or self.username_pattern.fullmatch(username) is None:
            raise ValidationError(f'Invalid username format: {username!r}')
        self.directory = directory
        self.username = username

    @staticmethod
    def encryption_method(flags: Iterable[str]) -> EncryptionMethod:
        value = parse_flags(flags).get(ENCRYPTION_FLAG)
        if value is None:
            raise UnsupportedMethodError(f'No encryption nodelist flag ({ENCRYPTION_FLAG})')
        method = EncryptionMethod.lookup(value) if isinstance(value, str) else None
        if method is None:
            raise UnsupportedMethodError(f'Unsupported encryption method ({value})')
        return method

    def resolve(self, address: Address | str) -> NodeCapability:
        """
        Resolve the encryption capability of the node with the given address.

        Raises NotFoundError if the node is not listed. Nodes that are listed
        but do not advertise a supported encryption method are reported with
        a capability that has no method.
        """
        address = Address.parse(address)
        record = self.directory.lookup(address)
        destination = f'{self.username}@{record.address.fqdn}'
        try:
            method = self.encryption_method(record.flags)
        except UnsupportedMethodError as exc:
            log.info('Node %s is not encryption capable: %s', record.address, exc)
            return NodeCapability(destination=destination)
        return NodeCapability(destination=destination, method=method)
