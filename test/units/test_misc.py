#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import inspect
import logging

from . import TestUnitBase, lgres

from lgres.lib.environment import LogLevel
from lgres.units import Arg, Entry, Unit


class TestUnitFramework(TestUnitBase):

    def test_all_units_are_exported(self):
        names = dir(lgres)
        for name in ('lgmerge', 'lgunpack', 'xtlgres', 'Unit', 'Arg'):
            self.assertIn(name, names)
        self.assertIsNone(lgres.load('nosuchunit'))

    def test_units_have_documentation(self):
        with lgres.__unit_loader__ as ldr:
            ldr.load()
            units = list(ldr.cache.values())
        self.assertGreaterEqual(len(units), 3)
        for unit in units:
            self.assertTrue(issubclass(unit, Entry))
            self.assertTrue(inspect.cleandoc(unit.__doc__), F'{unit.name} has no documentation')
            help = unit.argparser().format_help()
            self.assertIn('--verbose', help)
            self.assertIn('--quiet', help)

    def test_units_in_code_are_detached(self):
        unit = lgres.lgunpack()
        self.assertEqual(unit.log_level, LogLevel.DETACHED)
        self.assertEqual(unit.args.skip, 0)
        self.assertIsNone(unit.args.size)

    def test_command_line_log_level(self):
        unit = lgres.lgunpack.assemble('-vv')
        self.assertEqual(unit.log_level, LogLevel.DEBUG)
        unit = lgres.lgunpack.assemble('-Q')
        self.assertEqual(unit.log_level, LogLevel.NONE)
        unit.log_detach()

    def test_custom_unit(self):
        class rev(Unit):
            """
            Reverse the input.
            """
            def __init__(self, count: Arg.Number('-c', help='Repeat this many times.') = 1):
                pass

            def process(self, data):
                for _ in range(self.args.count):
                    yield data[::-1]

        self.assertEqual(B'abc' | rev() | ..., B'cba')
        self.assertEqual(B'abc' | rev(2) | [bytes], [B'cba', B'cba'])
        self.assertEqual(B'abc' | rev.assemble('-c', '3') | str, 'cbacbacba')

    def test_log_helpers_report_level(self):
        logging.disable(logging.NOTSET)
        unit = lgres.xtlgres.assemble('-v')
        try:
            self.assertTrue(unit.log_info())
            self.assertFalse(unit.log_debug())
            self.assertTrue(unit.log_warn())
        finally:
            unit.log_detach()
