#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from lgres.lib.decompression import LGZ
from lgres.lib.resfile import ContentType, FormatError, ResourceFlags

from . import TestUnitBase
from ... import make_archive, make_compound, pack_codes


class TestXTLGRes(TestUnitBase):

    def setUp(self):
        super().setUp()
        self.archive = make_archive(
            (0x0010, ContentType.String, 0, B'Citadel Station'),
            (0x0011, ContentType.Image, ResourceFlags.Compound, make_compound(B'deck', B'', B'bridge')),
            (0x0012, ContentType.Palette, ResourceFlags.Packed, pack_codes(*B'TriOptimum', LGZ.END_OF_STREAM), 10),
        )

    def test_extract_everything(self):
        test = self.archive | self.load() | [bytes]
        self.assertEqual(test, [B'Citadel Station', B'deck', B'', B'bridge', B'TriOptimum'])

    def test_extract_selection(self):
        test = self.archive | self.load('0x12', '16') | [bytes]
        self.assertEqual(test, [B'TriOptimum', B'Citadel Station'])

    def test_missing_resource(self):
        with self.assertRaises(KeyError):
            self.archive | self.load('0x13') | ...

    def test_listing(self):
        lines = (self.archive | self.load('-l') | str).splitlines()
        self.assertEqual(len(lines), 3)
        self.assertEqual(lines[0].split(), ['0010', 'String', '0', '15', '1'])
        self.assertEqual(lines[1].split(), ['0011', 'Image', 'Compound', '28', '3'])
        self.assertEqual(lines[2].split(), ['0012', 'Palette', 'Packed', '10', '1'])

    def test_invalid_input(self):
        with self.assertRaises(FormatError):
            B'This is not a resource file at all.' | self.load() | ...
