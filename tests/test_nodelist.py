# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import os
from pathlib import Path

import pytest

from ftncrypt.address import Address
from ftncrypt.exceptions import NotFoundError
from ftncrypt.nodelist import Nodelist

NODELIST = '''\
;A FidoNet Nodelist for Friday, January 4, 2019 -- Day number 004 : 12345
;A
Zone,2,Europe,Somewhere,Zone_Coordinator,-Unpublished-,300,CM,IBN
Region,50,Russia,Moscow,Region_Coordinator,-Unpublished-,300,CM,IBN
Host,5020,Moscow_Net,Moscow,Net_Coordinator,-Unpublished-,300,CM,IBN,U,ENCRYPT:PGP5
,1,Crypto_Node,Moscow,John_Doe,-Unpublished-,300,CM,IBN,U,ENCRYPT:GnuPG
Hub,100,Hub_Node,Moscow,Hub_Sysop,-Unpublished-,300,CM,IBN
Pvt,2,Private_Node,Moscow,Jane_Doe,-Unpublished-,300,U,ENCRYPT:BLOWFISH
Hold,3,Held_Node,Moscow,Held_Sysop,-Unpublished-,300
Bogus,4,Unknown_Keyword,Moscow,Nobody,-Unpublished-,300
,5,Short_Line
,x,Bad_Number,Moscow,Nobody,-Unpublished-,300
\x1a'''


@pytest.fixture
def nodelist_file(tmp_path: Path) -> Path:
    path = tmp_path / 'NODELIST.004'
    path.write_bytes(NODELIST.replace('\n', '\r\n').encode('cp437'))
    return path


class TestNodelist:

    def test_parse(self, nodelist_file: Path) -> None:
        nodelist = Nodelist(nodelist_file)
        assert len(nodelist) == 7
        assert Address.parse('2:2/0') in nodelist
        assert Address.parse('2:50/0') in nodelist
        assert Address.parse('2:5020/0') in nodelist
        assert Address.parse('2:5020/1') in nodelist
        assert Address.parse('2:5020/100') in nodelist
        assert Address.parse('2:5020/4') not in nodelist
        assert '2:5020/1' not in nodelist

    def test_lookup(self, nodelist_file: Path) -> None:
        nodelist = Nodelist(nodelist_file)
        record = nodelist.lookup(Address.parse('2:5020/1'))
        assert record.address == Address.parse('2:5020/1')
        assert record.keyword == ''
        assert record.name == 'Crypto_Node'
        assert record.sysop == 'John_Doe'
        assert record.speed == '300'
        assert record.flags == ('CM', 'IBN', 'U', 'ENCRYPT:GnuPG')

        host = nodelist.lookup(Address.parse('2:5020/0'))
        assert host.keyword == 'Host'
        assert host.flags[-1] == 'ENCRYPT:PGP5'

        held = nodelist.lookup(Address.parse('2:5020/3'))
        assert held.flags == ()

    def test_lookup_ignores_domain(self, nodelist_file: Path) -> None:
        nodelist = Nodelist(nodelist_file, domain='fidonet')
        record = nodelist.lookup(Address.parse('2:5020/1@othernet'))
        assert record.address.domain == 'fidonet'

    def test_lookup_missing(self, nodelist_file: Path) -> None:
        nodelist = Nodelist(nodelist_file)
        with pytest.raises(NotFoundError, match=r'not found'):
            nodelist.lookup(Address.parse('2:5020/999'))
        with pytest.raises(NotFoundError, match=r'Points are not listed'):
            nodelist.lookup(Address.parse('2:5020/1.1'))

    def test_glob_picks_newest(self, tmp_path: Path, nodelist_file: Path) -> None:
        older = tmp_path / 'NODELIST.361'
        older.write_text('Zone,1,North_America,Somewhere,Zone_Coordinator,-Unpublished-,300\r\n', encoding='cp437')
        os.utime(older, (0, 0))
        nodelist = Nodelist(tmp_path / 'NODELIST.*')
        assert nodelist.path == nodelist_file
        assert Address.parse('2:5020/1') in nodelist

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            Nodelist(tmp_path / 'NODELIST.*')

    def test_parse_lines_before_zone(self) -> None:
        records = Nodelist.parse([',1,Orphan,Nowhere,Nobody,-Unpublished-,300', 'Zone,3,Zone_3,Somewhere,Someone,-Unpublished-,300'])
        assert list(records) == [(3, 3, 0)]
