import logging
import random
import unittest

import lgres

from lgres.lib.resfile import (
    CompoundBlockTable,
    DirectoryEntry,
    DirectoryHeader,
    FileHeader,
    ResourceFlags,
)
from lgres.lib.structures import StructWriter


__all__ = ['lgres', 'TestBase', 'NameUnknownException', 'pack_codes', 'make_archive', 'make_compound']


class NameUnknownException(Exception):
    def __init__(self, name):
        super().__init__('could not resolve: {}'.format(name))


def pack_codes(*codes: int) -> bytes:
    """
    Pack the given 14-bit codes into a byte string, most significant bit first. The last byte is
    padded with zero bits.
    """
    value = 0
    for code in codes:
        value = value << 14 | code
    bits = 14 * len(codes)
    padding = -bits % 8
    return (value << padding).to_bytes((bits + padding) // 8, 'big')


def make_archive(*resources, comment: str = 'test archive') -> bytearray:
    """
    Build a resource file from tuples of the form `(id, content_type, flags, payload)` and an
    optional fifth element that specifies the unpacked length, which defaults to the length of the
    payload. The payload is stored verbatim, i.e. it has to be packed already if the flags say so.
    """
    writer = StructWriter()
    header = FileHeader.New(comment=comment, reserved=bytes(12), directory_offset=0)
    header.write(writer)
    entries = []
    for resource in resources:
        rid, content_type, flags, payload, *rest = resource
        unpacked = rest[0] if rest else len(payload)
        writer.write(payload)
        writer.pad(-len(payload) % 4)
        entries.append(DirectoryEntry.New(
            id=rid,
            length_unpacked=unpacked,
            flags=ResourceFlags(flags),
            length_packed=len(payload),
            content_type=content_type,
        ))
    directory_offset = writer.tell()
    DirectoryHeader.New(count=len(entries), data_offset=FileHeader.Size).write(writer)
    for entry in entries:
        entry.write(writer)
    header.directory_offset = directory_offset
    with writer.detour(0):
        header.write(writer)
    return writer.getvalue()


def make_compound(*chunks: bytes) -> bytes:
    """
    Build the unpacked payload of a compound resource from its chunks.
    """
    return bytes(CompoundBlockTable.FromChunks(list(chunks)).build()) + B''.join(chunks)


class TestBase(unittest.TestCase):

    def generate_random_buffer(self, size):
        return bytes(random.randrange(0, 0x100) for _ in range(size))

    def setUp(self):
        random.seed(0xBAADF00D)  # guarantee deterministic 'random' buffers
        logging.disable(logging.CRITICAL)
