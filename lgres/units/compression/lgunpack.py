#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

from lgres.units import Arg, Unit
from lgres.lib.decompression import unpack
from lgres.lib.types import Param


class lgunpack(Unit):
    """
    Decompress a raw packed stream as it is stored in the payload of a packed LookingGlass
    resource. Without a size, the stream is decoded up to its end-of-stream code.
    """
    def __init__(
        self,
        size: Param[int, Arg.Number('size', help='Number of bytes to decode; the output is zero-padded to it.')] = None,
        skip: Param[int, Arg.Number('-s', '--skip', help='Discard this many decoded bytes from the start, default is %(default)s.')] = 0,
    ):
        pass

    def process(self, data: bytearray):
        size = self.args.size
        skip = self.args.skip
        if skip < 0 or size is not None and size < 0:
            raise ValueError('Size and skip must not be negative.')
        self.log_debug(lambda: F'decoding {"all" if size is None else size} bytes after skipping {skip}')
        return unpack(data, size, skip)
