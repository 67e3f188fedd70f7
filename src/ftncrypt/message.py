# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
FTN message envelope.

   An FTN message text consists of lines separated by a carriage return.
   Lines that start with the SOH control character (ASCII 0x01) are kludge
   lines: out of band control information that is not displayed to the
   user (the message id, the path, the encryption method, ...). The rest
   of the lines form the message body.

   Kludges that appear before the body form the message header, while the
   kludges that follow the body form the message footer:

     +-------------------------+
     |     Header kludges      |
     +-------------------------+
     |       Message body      |
     +-------------------------+
     |     Footer kludges      |
     +-------------------------+

   Once the footer started, the message is considered finished and any
   plain text line that follows is dropped. Existing message stores rely
   on this framing, so it is reproduced as is.

"""

import logging
from collections.abc import Iterable, Iterator
from typing import Self

from .address import Address
from .exceptions import FormatError, ValidationError
from .python.types import StringEnum

__all__ = 'SOH', 'CR', 'LF', 'KludgeArea', 'Message'  # noqa: RUF022


log = logging.getLogger(__name__)


SOH = '\x01'  # kludge marker
CR = '\r'     # line separator inside messages
LF = '\n'     # line separator for display


class KludgeArea(StringEnum):
    HEADER = 'HEADER'
    FOOTER = 'FOOTER'


class Message:
    """An FTN message decomposed into header kludges, body and footer kludges"""

    def __init__(self, address: Address | str, *, header: Iterable[str] = (), body: str = '', footer: Iterable[str] = ()) -> None:
        if address is None:
            raise FormatError('No address specified')
        self.address = Address.parse(address)
        self.header: list[str] = []
        self.footer: list[str] = []
        self.body = body
        for kludge in header:
            self.add_kludge(kludge, KludgeArea.HEADER)
        for kludge in footer:
            self.add_kludge(kludge, KludgeArea.FOOTER)

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({str(self.address)!r}, header={self.header!r}, body={self.body!r}, footer={self.footer!r})'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Message):
            return (self.address, self.header, self.body, self.footer) == (other.address, other.header, other.body, other.footer)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def decode(cls, raw: str, *, address: Address | str) -> Self:
        if raw is None:
            raise FormatError('No message specified')
        message = cls(address)
        body: list[str] = []
        body_started = False
        footer_locked = False
        for line in raw.split(CR):
            if line.startswith(SOH):
                if body_started:
                    footer_locked = True
                    message.footer.append(line.removeprefix(SOH))
                else:
                    message.header.append(line.removeprefix(SOH))
            elif footer_locked:
                log.debug('Dropping text line after the footer kludges in a message to %s: %r', message.address, line)
            else:
                body_started = True
                body.append(line)
        message.body = CR.join(body)
        return message

    def encode(self) -> str:
        header = CR.join(SOH + kludge for kludge in self.header)
        footer = CR.join(SOH + kludge for kludge in self.footer)
        return CR.join((header, self.body, footer))

    @property
    def text(self) -> str:
        """The message body with LF line endings, suitable for display and editing"""
        return self.body.replace(CR, LF)

    @text.setter
    def text(self, value: str) -> None:
        self.body = value.replace(LF, CR)

    @property
    def all_kludges(self) -> Iterator[str]:
        """Iterate over the header kludges followed by the footer kludges"""
        yield from self.header
        yield from self.footer

    def kludges(self, area: KludgeArea | str = KludgeArea.HEADER) -> list[str]:
        return list(self._area(area))

    def add_kludge(self, kludge: str, area: KludgeArea | str = KludgeArea.HEADER) -> None:
        kludges = self._area(area)
        self._check_kludge(kludge)
        if CR in kludge or LF in kludge:
            raise ValidationError(f'Kludge must be a single line: {kludge!r}')
        kludges.append(kludge)

    def remove_kludge(self, name: str, area: KludgeArea | str = KludgeArea.HEADER) -> None:
        """Remove all the kludges in the area that are either `name` or `name: value`"""
        kludges = self._area(area)
        self._check_kludge(name)
        kludges[:] = [kludge for kludge in kludges if not (kludge == name or kludge.startswith(f'{name}: '))]

    def _area(self, area: KludgeArea | str) -> list[str]:
        match KludgeArea.lookup(area):
            case KludgeArea.HEADER:
                return self.header
            case KludgeArea.FOOTER:
                return self.footer
            case _:
                raise ValidationError(f'Invalid kludge area: {area!r}')

    @staticmethod
    def _check_kludge(kludge: str) -> None:
        if not kludge:
            raise ValidationError('Kludge is empty')
