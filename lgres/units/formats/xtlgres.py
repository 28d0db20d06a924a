#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

from lgres.units import Arg, Unit
from lgres.lib.resfile import ResourceFile, content_type_name
from lgres.lib.types import Param


class xtlgres(Unit):
    """
    Extract resources from a LookingGlass resource file. Every block of every selected resource is
    emitted as a separate chunk of output; all blocks are unpacked. Without identifiers, all
    resources are extracted.
    """
    def __init__(
        self,
        *ids: Param[int, Arg.Number(metavar='id', help='Identifier of a resource to extract.')],
        list: Param[bool, Arg.Switch('-l', '--list', help='List the resources instead of extracting them.')] = False,
    ):
        pass

    def process(self, data: bytearray):
        resfile = ResourceFile(data)
        self.log_info(F'resource file comment: {resfile.comment}')
        ids = self.args.ids
        if not ids:
            ids = [info.id for info in resfile]
        for rid in ids:
            if rid not in resfile:
                raise KeyError(F'The resource file contains no resource with id {rid:#06x}.')
            if self.args.list:
                entry = resfile.info(rid).entry
                line = (
                    F'{rid:04X} {content_type_name(entry.content_type):<9} {entry.flags!r:<18} '
                    F'{entry.length_unpacked:>8} {resfile.block_count(rid):>4}')
                yield line.encode(self.codec) + B'\n'
                continue
            blocks = resfile.blocks(rid)
            self.log_debug(F'resource {rid:04X} has {len(blocks)} block(s)')
            yield from blocks
