# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .__info__ import __version__
from .address import Address
from .capability import CapabilityResolver, EncryptionMethod, NodeCapability
from .configuration import Configuration
from .crypt import Crypt, OperationResult
from .engine import CryptoEngine, GnuPGEngine
from .message import KludgeArea, Message
from .nodelist import Directory, NodeRecord, Nodelist

__all__ = (  # noqa: RUF022
    '__version__',
    'Address',
    'CapabilityResolver',
    'Configuration',
    'Crypt',
    'CryptoEngine',
    'Directory',
    'EncryptionMethod',
    'GnuPGEngine',
    'KludgeArea',
    'Message',
    'NodeCapability',
    'NodeRecord',
    'Nodelist',
    'OperationResult',
)
