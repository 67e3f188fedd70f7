# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Encryption of FTN messages.

   Although FidoNet Policy forbids routing encrypted traffic without the
   permission of all the links in the delivery system, encrypted netmail
   can still be delivered directly, and other FTN networks may allow it.

   A message is encrypted only if its destination node advertises a known
   encryption method in the nodelist. The body is replaced with the ASCII
   armoured ciphertext and the method is recorded in an ENC kludge:

       ^AENC: PGP5

   On decryption the node capability is checked again and the message is
   refused if the recorded method differs from the one the node currently
   advertises, so a method the node gave up on is never silently accepted.

"""

import logging
import re
from dataclasses import dataclass
from typing import ClassVar, Final, Self

from .address import Address
from .capability import DEFAULT_USERNAME, CapabilityResolver, EncryptionMethod, NodeCapability
from .configuration import Configuration
from .engine import CryptoEngine
from .exceptions import CryptError, EngineError, MethodMismatchError, NotEncryptedError, NotFoundError, UnsupportedMethodError, ValidationError
from .message import KludgeArea, Message
from .nodelist import Directory

__all__ = 'ENCRYPTION_KLUDGE', 'NO_DESTINATION', 'NOT_ENCRYPTED', 'OperationResult', 'Crypt'  # noqa: RUF022


log = logging.getLogger(__name__)


ENCRYPTION_KLUDGE: Final = 'ENC'

NO_DESTINATION: Final = 'no encryption-capable destination'
NOT_ENCRYPTED: Final = 'message is not encrypted'


@dataclass(frozen=True, slots=True)
class OperationResult:
    ok: bool
    text: str
    error: CryptError | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, text: str) -> Self:
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, error: CryptError, text: str | None = None) -> Self:
        return cls(ok=False, text=str(error) if text is None else text, error=error)


class Crypt:
    """Encrypt and decrypt FTN messages for encryption capable nodes"""

    kludge_pattern: ClassVar[re.Pattern[str]] = re.compile(rf'{ENCRYPTION_KLUDGE}:\s+(?P<method>\w+)')

    def __init__(self, directory: Directory, engine: CryptoEngine, *, username: str = DEFAULT_USERNAME) -> None:
        self.resolver = CapabilityResolver(directory, username=username)
        self.engine = engine

    @classmethod
    def from_configuration(cls, configuration: Configuration) -> Self:
        return cls(configuration.nodelist(), configuration.engine(), username=configuration.username)

    def _capability(self, address: Address) -> tuple[str, EncryptionMethod]:
        capability: NodeCapability = self.resolver.resolve(address)
        if capability.method is None:
            raise UnsupportedMethodError(f'Node {address} does not advertise a supported encryption method')
        return capability.destination, capability.method

    def _method_used(self, message: Message) -> str | None:
        method_used = None
        for kludge in message.all_kludges:
            if (match := self.kludge_pattern.fullmatch(kludge)) is not None:
                method_used = match['method']
        return method_used

    def encrypt_message(self, address: Address | str, message: str) -> OperationResult:
        msg = Message.decode(message, address=address)

        try:
            destination, method = self._capability(msg.address)
        except (NotFoundError, UnsupportedMethodError) as exc:
            log.warning('Not encrypting message to %s: %s', msg.address, exc)
            return OperationResult.failure(exc, NO_DESTINATION)

        try:
            ciphertext = self.engine.encrypt(msg.text, method, destination)
        except EngineError as exc:
            log.warning('Failed to encrypt message to %s: %s', msg.address, exc)
            return OperationResult.failure(exc)

        msg.text = ciphertext
        msg.add_kludge(f'{ENCRYPTION_KLUDGE}: {method}')
        log.info('Encrypted message to %s for %s using %s', msg.address, destination, method)
        return OperationResult.success(msg.encode())

    def decrypt_message(self, address: Address | str, message: str, passphrase: str) -> OperationResult:
        if not passphrase:
            raise ValidationError('No passphrase specified')

        msg = Message.decode(message, address=address)

        method_used = self._method_used(msg)
        if method_used is None:
            log.warning('Not decrypting message to %s: %s', msg.address, NOT_ENCRYPTED)
            return OperationResult.failure(NotEncryptedError(NOT_ENCRYPTED))

        try:
            _, method = self._capability(msg.address)
        except (NotFoundError, UnsupportedMethodError) as exc:
            log.warning('Not decrypting message to %s: %s', msg.address, exc)
            return OperationResult.failure(exc, NO_DESTINATION)

        if method != method_used:
            mismatch = MethodMismatchError(used=method_used, advertised=method)
            log.warning('Not decrypting message to %s: %s', msg.address, mismatch)
            return OperationResult.failure(mismatch)

        try:
            ciphertext = self.engine.unarmour(msg.text)
            plaintext = self.engine.decrypt(ciphertext, method, passphrase)
        except EngineError as exc:
            log.warning('Failed to decrypt message to %s: %s', msg.address, exc)
            return OperationResult.failure(exc)

        msg.text = plaintext
        msg.remove_kludge(ENCRYPTION_KLUDGE, KludgeArea.HEADER)
        msg.remove_kludge(ENCRYPTION_KLUDGE, KludgeArea.FOOTER)
        log.info('Decrypted message to %s using %s', msg.address, method)
        return OperationResult.success(msg.encode())
