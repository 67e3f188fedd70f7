# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


__all__ = 'CryptError', 'ValidationError', 'FormatError', 'NotFoundError', 'UnsupportedMethodError', 'MethodMismatchError', 'NotEncryptedError', 'EngineError', 'ArmourError'  # noqa: RUF022


class CryptError(Exception):
    """Base class for all the errors raised by ftncrypt."""


class ValidationError(CryptError, ValueError):
    """Raised when the caller provides invalid or missing input."""


class FormatError(ValidationError):
    """Raised when a message cannot be built from the provided arguments."""


class NotFoundError(CryptError, LookupError):
    """Raised when an address has no record in the nodelist."""


class UnsupportedMethodError(CryptError):
    """
    Raised when a node does not advertise a supported encryption method.

    This covers both nodes that lack the encryption flag altogether and
    nodes that advertise a method which is not one of the known methods.

    """


class MethodMismatchError(CryptError):
    """
    Raised when an encrypted message records a different encryption method
    than the one currently advertised by the node it is addressed to.

    """

    def __init__(self, used: str, advertised: str) -> None:
        super().__init__(f'method mismatch: message uses {used}, node now advertises {advertised}')
        self.used = used
        self.advertised = advertised


class EngineError(CryptError):
    """
    Raised when the cryptographic engine fails.

    The message comes from the engine and is reported to the caller as is.

    """


class ArmourError(EngineError):
    """Raised when the ASCII armoured block of a message is incomplete."""


class NotEncryptedError(CryptError):
    """Raised when decrypting a message that has no encryption method kludge."""
