#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

from lgres.units import Arg, Unit
from lgres.lib.resmanager import ResourceTable
from lgres.lib.types import Param


class lgmerge(Unit):
    """
    Merge LookingGlass resource files. All arguments except the last one are input files, which are
    merged in the given order; the merged resource file is written to the last argument. When two
    inputs contain the same resource, the blocks of the later one take precedence, except for
    blocks that are empty. The output is always stored unpacked. The comment of the output file can
    be set with the LGRES_COMMENT environment variable.
    """

    reads_input = False
    usage = '{name} <in> [<in>]... <out>'

    def __init__(self, *paths: Param[str, Arg.FsPath(help='Input files followed by the output file.')]):
        if len(paths) < 2:
            raise ValueError('At least one input and one output file are required.')
        super().__init__(paths=paths)

    def process(self, data=None):
        *inputs, output = self.args.paths
        table = ResourceTable(self.logger)
        for path in inputs:
            self.log_debug(F'reading {path}')
            with open(path, 'rb') as stream:
                table.ingest(stream.read(), path)
        merged = table.serialize()
        self.log_info(F'writing {len(table)} resources to {output}')
        with open(output, 'wb') as stream:
            stream.write(merged)
