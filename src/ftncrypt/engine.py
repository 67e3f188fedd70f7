# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
import re
from collections.abc import Mapping, Sequence
from os import PathLike
from os.path import expanduser, realpath
from typing import ClassVar, Final, Protocol

import gnupg

from .capability import EncryptionMethod
from .exceptions import ArmourError, EngineError

__all__ = 'DEFAULT_KEYSERVER', 'CryptoEngine', 'GnuPGEngine'


log = logging.getLogger(__name__)


DEFAULT_KEYSERVER: Final = 'hkps://keys.openpgp.org'

ARMOUR_HEADER: Final = '-----BEGIN PGP MESSAGE-----'
ARMOUR_TAIL: Final = '-----END PGP MESSAGE-----'


class CryptoEngine(Protocol):
    def encrypt(self, plaintext: str, method: EncryptionMethod, recipient: str) -> str: ...

    def decrypt(self, ciphertext: bytes, method: EncryptionMethod, passphrase: str) -> str: ...

    def unarmour(self, text: str) -> bytes: ...


class GnuPGEngine:
    """A CryptoEngine that delegates the OpenPGP operations to GnuPG"""

    compliance_options: Final[Mapping[EncryptionMethod, Sequence[str]]] = {
        EncryptionMethod.PGP2: ['--rfc4880'],  # --rfc2440 encrypts without MDC, which GnuPG refuses to decrypt
        EncryptionMethod.PGP5: ['--pgp6'],
        EncryptionMethod.GNUPG: ['--gnupg'],
    }

    armour_block: ClassVar[re.Pattern[str]] = re.compile(rf'^{ARMOUR_HEADER}$.*?^{ARMOUR_TAIL}$', re.MULTILINE | re.DOTALL)

    def __init__(
        self,
        *,
        gnupghome: str | PathLike[str] | None = None,
        keyring: str | None = None,
        secret_keyring: str | None = None,
        keyserver: str = DEFAULT_KEYSERVER,
        auto_key_retrieve: bool = True,
        always_trust: bool = True,
        gpgbinary: str = 'gpg',
        encoding: str = 'utf-8',
    ) -> None:
        self.keyserver = keyserver
        self.auto_key_retrieve = auto_key_retrieve
        self.always_trust = always_trust
        self.encoding = encoding
        self.gpg = gnupg.GPG(
            gpgbinary=gpgbinary,
            gnupghome=realpath(expanduser(gnupghome)) if gnupghome is not None else None,  # noqa: PTH111
            keyring=keyring,
            secret_keyring=secret_keyring,
        )
        self.gpg.encoding = encoding

    def encryption_keys(self, recipient: str) -> list[str]:
        """Return the fingerprints of the keys that can encrypt for recipient"""
        keys = self.gpg.list_keys(keys=[f'<{recipient}>'])
        return [key['fingerprint'] for key in keys if 'E' in key.get('cap', '')]

    def retrieve_keys(self, recipient: str) -> None:
        found = self.gpg.search_keys(f'<{recipient}>', keyserver=self.keyserver)
        keyids = [key['keyid'] for key in found]
        if not keyids:
            log.info('No keys for %s found on %s', recipient, self.keyserver)
            return
        result = self.gpg.recv_keys(self.keyserver, *keyids)
        log.info('Retrieved %d key(s) for %s from %s', result.count or 0, recipient, self.keyserver)

    def encrypt(self, plaintext: str, method: EncryptionMethod, recipient: str) -> str:
        fingerprints = self.encryption_keys(recipient)
        if not fingerprints and self.auto_key_retrieve:
            self.retrieve_keys(recipient)
            fingerprints = self.encryption_keys(recipient)
        if not fingerprints:
            raise EngineError(f'No encryption key found for {recipient}')
        result = self.gpg.encrypt(
            plaintext,
            fingerprints,
            armor=True,
            always_trust=self.always_trust,
            extra_args=list(self.compliance_options[method]),
        )
        if not result.ok:
            log.debug('GnuPG encryption for %s failed: %s', recipient, result.stderr)
            raise EngineError(result.status or 'encryption failed')
        return str(result)

    def decrypt(self, ciphertext: bytes, method: EncryptionMethod, passphrase: str) -> str:
        result = self.gpg.decrypt(ciphertext, passphrase=passphrase, extra_args=list(self.compliance_options[method]))
        if not result.ok:
            log.debug('GnuPG decryption failed: %s', result.stderr)
            raise EngineError(result.status or 'decryption failed')
        return str(result)

    def unarmour(self, text: str) -> bytes:
        """
        Isolate the ASCII armoured message block from the message text.

        GnuPG decodes the armour and verifies its checksum while decrypting,
        so the block is returned as is. Text without an armour header line
        is returned encoded, as it is taken to be the ciphertext itself.
        """
        text = text.replace('\r\n', '\n').replace('\r', '\n')
        if ARMOUR_HEADER not in text:
            return text.encode(self.encoding)
        match = self.armour_block.search(text)
        if match is None:
            raise ArmourError('Unable to unarmour message: missing armour tail line')
        return match.group().encode(self.encoding)
