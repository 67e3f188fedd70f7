# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import shutil
import subprocess
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import gnupg
import pytest

from ftncrypt.capability import EncryptionMethod
from ftncrypt.engine import DEFAULT_KEYSERVER, GnuPGEngine
from ftncrypt.exceptions import ArmourError, EngineError

RECIPIENT = 'sysop@f1.n5020.z2.fidonet.net'
PASSPHRASE = 'secret'
PLAINTEXT = 'Hello,\nthis is a secret.\n'

ENCRYPTION_KEY = {'fingerprint': 'A' * 40, 'keyid': 'A' * 16, 'cap': 'escaESCA'}
SIGNING_KEY = {'fingerprint': 'B' * 40, 'keyid': 'B' * 16, 'cap': 'scSC'}


class CryptResult(SimpleNamespace):
    def __str__(self) -> str:
        return self.data.decode()


@pytest.fixture
def gpg() -> Iterator[mock.MagicMock]:
    with mock.patch('gnupg.GPG', autospec=True) as gpg_class:
        yield gpg_class.return_value


class TestGnuPGEngine:

    def test_construction(self, gpg: mock.MagicMock) -> None:
        engine = GnuPGEngine(keyring='pubring.gpg', secret_keyring='secring.gpg', gpgbinary='gpg2')
        gnupg.GPG.assert_called_once_with(gpgbinary='gpg2', gnupghome=None, keyring='pubring.gpg', secret_keyring='secring.gpg')  # type: ignore[attr-defined]
        assert engine.gpg is gpg
        assert engine.keyserver == DEFAULT_KEYSERVER
        assert gpg.encoding == 'utf-8'

    def test_encrypt(self, gpg: mock.MagicMock) -> None:
        gpg.list_keys.return_value = [SIGNING_KEY, ENCRYPTION_KEY]
        gpg.encrypt.return_value = CryptResult(ok=True, status='encryption ok', stderr='', data=b'-----BEGIN PGP MESSAGE-----')
        engine = GnuPGEngine()
        assert engine.encrypt('Hello', EncryptionMethod.PGP5, RECIPIENT) == '-----BEGIN PGP MESSAGE-----'
        gpg.list_keys.assert_called_once_with(keys=[f'<{RECIPIENT}>'])
        gpg.encrypt.assert_called_once_with('Hello', [ENCRYPTION_KEY['fingerprint']], armor=True, always_trust=True, extra_args=['--pgp6'])
        gpg.search_keys.assert_not_called()

    def test_encrypt_retrieves_keys(self, gpg: mock.MagicMock) -> None:
        gpg.list_keys.side_effect = [[], [ENCRYPTION_KEY]]
        gpg.search_keys.return_value = [{'keyid': ENCRYPTION_KEY['keyid']}]
        gpg.recv_keys.return_value = SimpleNamespace(count=1)
        gpg.encrypt.return_value = CryptResult(ok=True, status='encryption ok', stderr='', data=b'ciphertext')
        engine = GnuPGEngine(keyserver='hkps://keys.example.org')
        assert engine.encrypt('Hello', EncryptionMethod.GNUPG, RECIPIENT) == 'ciphertext'
        gpg.search_keys.assert_called_once_with(f'<{RECIPIENT}>', keyserver='hkps://keys.example.org')
        gpg.recv_keys.assert_called_once_with('hkps://keys.example.org', ENCRYPTION_KEY['keyid'])
        assert gpg.encrypt.call_args.kwargs['extra_args'] == ['--gnupg']

    def test_encrypt_without_key(self, gpg: mock.MagicMock) -> None:
        gpg.list_keys.return_value = [SIGNING_KEY]
        gpg.search_keys.return_value = []
        engine = GnuPGEngine()
        with pytest.raises(EngineError, match=r'No encryption key found'):
            engine.encrypt('Hello', EncryptionMethod.PGP2, RECIPIENT)
        gpg.recv_keys.assert_not_called()
        gpg.encrypt.assert_not_called()

    def test_encrypt_without_key_retrieval(self, gpg: mock.MagicMock) -> None:
        gpg.list_keys.return_value = []
        engine = GnuPGEngine(auto_key_retrieve=False)
        with pytest.raises(EngineError, match=r'No encryption key found'):
            engine.encrypt('Hello', EncryptionMethod.PGP2, RECIPIENT)
        gpg.search_keys.assert_not_called()

    def test_encrypt_failure(self, gpg: mock.MagicMock) -> None:
        gpg.list_keys.return_value = [ENCRYPTION_KEY]
        gpg.encrypt.return_value = CryptResult(ok=False, status='invalid recipient', stderr='[GNUPG:] INV_RECP', data=b'')
        engine = GnuPGEngine()
        with pytest.raises(EngineError, match=r'^invalid recipient$'):
            engine.encrypt('Hello', EncryptionMethod.PGP2, RECIPIENT)
        assert gpg.encrypt.call_args.kwargs['extra_args'] == ['--rfc4880']

    def test_decrypt(self, gpg: mock.MagicMock) -> None:
        gpg.decrypt.return_value = CryptResult(ok=True, status='decryption ok', stderr='', data=b'Hello')
        engine = GnuPGEngine()
        assert engine.decrypt(b'ciphertext', EncryptionMethod.PGP5, 'secret') == 'Hello'
        gpg.decrypt.assert_called_once_with(b'ciphertext', passphrase='secret', extra_args=['--pgp6'])

    def test_decrypt_failure(self, gpg: mock.MagicMock) -> None:
        gpg.decrypt.return_value = CryptResult(ok=False, status='bad passphrase', stderr='', data=b'')
        engine = GnuPGEngine()
        with pytest.raises(EngineError, match=r'^bad passphrase$'):
            engine.decrypt(b'ciphertext', EncryptionMethod.PGP5, 'wrong')

    def test_unarmour(self, gpg: mock.MagicMock) -> None:  # noqa: ARG002
        block = '-----BEGIN PGP MESSAGE-----\n\nhQEMA1234\n=abcd\n-----END PGP MESSAGE-----'
        engine = GnuPGEngine()
        assert engine.unarmour(block) == block.encode()
        assert engine.unarmour(f'Leading text\n{block}\nTrailing text') == block.encode()
        assert engine.unarmour(f'Leading text\r{block.replace('\n', '\r')}\r') == block.encode()
        assert engine.unarmour('not armoured') == b'not armoured'

    def test_unarmour_failure(self, gpg: mock.MagicMock) -> None:  # noqa: ARG002
        engine = GnuPGEngine()
        with pytest.raises(ArmourError, match=r'^Unable to unarmour message: missing armour tail'):
            engine.unarmour('-----BEGIN PGP MESSAGE-----\n\nAAAA')


@pytest.fixture(scope='module')
def gnupghome(tmp_path_factory: pytest.TempPathFactory) -> Iterator[Path]:
    home = tmp_path_factory.mktemp('gnupg')
    home.chmod(0o700)
    gpg = gnupg.GPG(gnupghome=str(home))
    key_input = gpg.gen_key_input(
        name_real='Sysop',
        name_email=RECIPIENT,
        passphrase=PASSPHRASE,
        key_type='RSA',
        key_length=2048,
        subkey_type='RSA',
        subkey_length=2048,
        expire_date=0,
    )
    assert gpg.gen_key(key_input).fingerprint
    yield home
    if shutil.which('gpgconf') is not None:
        subprocess.run(['gpgconf', '--homedir', str(home), '--kill', 'all'], check=False)  # noqa: S603, S607


@pytest.mark.skipif(shutil.which('gpg') is None, reason='GnuPG is not installed')
class TestGnuPGRoundTrip:

    @pytest.mark.parametrize('method', list(EncryptionMethod))
    def test_round_trip(self, gnupghome: Path, method: EncryptionMethod) -> None:
        engine = GnuPGEngine(gnupghome=gnupghome, auto_key_retrieve=False)
        ciphertext = engine.encrypt(PLAINTEXT, method, RECIPIENT)
        assert ciphertext.startswith('-----BEGIN PGP MESSAGE-----')
        assert engine.decrypt(engine.unarmour(f'Leading text\n{ciphertext}'), method, PASSPHRASE) == PLAINTEXT

