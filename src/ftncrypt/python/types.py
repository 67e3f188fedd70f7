# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


from enum import StrEnum
from typing import Self

__all__ = 'StringEnum',  # noqa: COM818


class StringEnum(StrEnum):
    """Base class for string enumerations that are parsed from external data"""

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'

    @classmethod
    def lookup(cls, value: str) -> Self | None:
        try:
            return cls(value)
        except ValueError:
            return None
