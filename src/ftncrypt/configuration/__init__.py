# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import ClassVar, Final, Self

from lxml import etree

from ftncrypt.address import DEFAULT_DOMAIN
from ftncrypt.capability import DEFAULT_USERNAME
from ftncrypt.engine import DEFAULT_KEYSERVER, GnuPGEngine
from ftncrypt.exceptions import ValidationError
from ftncrypt.nodelist import Nodelist

from .schema import RelaxNGValidator, Validator

__all__ = 'NAMESPACE', 'Configuration', 'GnuPGConfiguration'  # noqa: RUF022


type ETreeElement = etree._Element  # noqa: SLF001


NAMESPACE: Final = 'urn:ftn-crypt:params:xml:ns:config'


def _tag(name: str) -> str:
    return f'{{{NAMESPACE}}}{name}'


def _text(element: ETreeElement, name: str) -> str | None:
    child = element.find(_tag(name))
    return child.text.strip() if child is not None and child.text is not None else None


@dataclass(frozen=True, kw_only=True)
class GnuPGConfiguration:
    home: str | None = None
    binary: str = 'gpg'
    keyserver: str = DEFAULT_KEYSERVER
    pubring: str | None = None
    secring: str | None = None
    auto_key_retrieve: bool = True

    @classmethod
    def from_xml(cls, element: ETreeElement) -> Self:
        auto_key_retrieve = _text(element, 'auto-key-retrieve')
        return cls(
            home=element.get('home'),
            binary=element.get('binary', 'gpg'),
            keyserver=_text(element, 'keyserver') or DEFAULT_KEYSERVER,
            pubring=_text(element, 'pubring') or None,
            secring=_text(element, 'secring') or None,
            auto_key_retrieve=auto_key_retrieve in {None, 'true', '1'},  # the schema only allows xsd:boolean values
        )


@dataclass(frozen=True, kw_only=True)
class Configuration:
    nodelist_path: str
    domain: str = DEFAULT_DOMAIN
    encoding: str = 'cp437'
    username: str = DEFAULT_USERNAME
    gnupg: GnuPGConfiguration = field(default_factory=GnuPGConfiguration)

    validator: ClassVar[Validator] = RelaxNGValidator('ftn-crypt.rng')

    @classmethod
    def from_xml(cls, element: ETreeElement, *, base_directory: str | PathLike[str] | None = None) -> Self:
        if not cls.validator.validate(element):
            raise ValidationError(f'Invalid configuration: {cls.validator.error}')
        nodelist = element.find(_tag('nodelist'))
        assert nodelist is not None  # guaranteed by the schema
        nodelist_path = Path(nodelist.text.strip()).expanduser()
        if base_directory is not None and not nodelist_path.is_absolute():
            nodelist_path = Path(base_directory) / nodelist_path
        gnupg = element.find(_tag('gnupg'))
        return cls(
            nodelist_path=str(nodelist_path),
            domain=nodelist.get('domain', DEFAULT_DOMAIN),
            encoding=nodelist.get('encoding', 'cp437'),
            username=_text(element, 'username') or DEFAULT_USERNAME,
            gnupg=GnuPGConfiguration.from_xml(gnupg) if gnupg is not None else GnuPGConfiguration(),
        )

    @classmethod
    def from_string(cls, document: str | bytes) -> Self:
        parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
        try:
            element = etree.fromstring(document.encode() if isinstance(document, str) else document, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise ValidationError(f'Invalid configuration: {exc}') from exc
        return cls.from_xml(element)

    @classmethod
    def from_file(cls, path: str | PathLike[str]) -> Self:
        """Load the configuration from a file. Relative nodelist paths are relative to the file's directory"""
        path = Path(path).expanduser()
        parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
        try:
            element = etree.parse(str(path), parser=parser).getroot()
        except etree.XMLSyntaxError as exc:
            raise ValidationError(f'Invalid configuration file {str(path)!r}: {exc}') from exc
        return cls.from_xml(element, base_directory=path.parent)

    def nodelist(self) -> Nodelist:
        return Nodelist(self.nodelist_path, domain=self.domain, encoding=self.encoding)

    def engine(self) -> GnuPGEngine:
        return GnuPGEngine(
            gnupghome=self.gnupg.home,
            keyring=self.gnupg.pubring,
            secret_keyring=self.gnupg.secring,
            keyserver=self.gnupg.keyserver,
            auto_key_retrieve=self.gnupg.auto_key_retrieve,
            gpgbinary=self.gnupg.binary,
        )
