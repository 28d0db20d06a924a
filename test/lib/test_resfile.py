import struct

from lgres.lib.decompression import LGZ
from lgres.lib.resfile import (
    BlockIndexError,
    CompoundBlockTable,
    ContentType,
    FileHeader,
    FormatError,
    ResourceFile,
    ResourceFlags,
    SizeMismatchError,
)

from .. import TestBase, make_archive, make_compound, pack_codes


def packed_literals(data: bytes) -> bytes:
    return pack_codes(*data, LGZ.END_OF_STREAM)


class TestResourceFile(TestBase):

    def test_header(self):
        data = make_archive((0x10, ContentType.String, 0, B'hello'), comment='Made for testing')
        self.assertEqual(data[:16], B'LG Res File v2\r\n')
        self.assertEqual(data[16 + len('Made for testing')], 0x1A)
        rf = ResourceFile(data)
        self.assertEqual(rf.comment, 'Made for testing')
        self.assertEqual(len(rf), 1)
        self.assertIn(0x10, rf)
        self.assertNotIn(0x11, rf)

    def test_invalid_signature(self):
        data = make_archive((0x10, ContentType.String, 0, B'hello'))
        data[13] = 0x33
        with self.assertRaises(FormatError):
            ResourceFile(data)

    def test_truncated_directory(self):
        data = make_archive((0x10, ContentType.String, 0, B'hello'), (0x11, ContentType.String, 0, B'world'))
        with self.assertRaises(FormatError):
            ResourceFile(data[:-4])
        with self.assertRaises(FormatError):
            ResourceFile(data[:100])

    def test_errors_are_value_errors(self):
        for error in (FormatError, BlockIndexError, SizeMismatchError):
            self.assertTrue(issubclass(error, ValueError))

    def test_directory_entry(self):
        data = make_archive((0x1234, ContentType.Map, ResourceFlags.LoadOnOpen, B'x' * 0x10203))
        entry = ResourceFile(data).info(0x1234).entry
        self.assertEqual(entry.id, 0x1234)
        self.assertEqual(entry.length_unpacked, 0x10203)
        self.assertEqual(entry.length_packed, 0x10203)
        self.assertEqual(entry.content_type, ContentType.Map)
        self.assertTrue(entry.flags.LoadOnOpen)
        self.assertFalse(entry.flags.Packed)
        self.assertEqual(len(entry), 10)

    def test_unknown_content_type_is_preserved(self):
        data = make_archive((0x10, 0x55, 0, B'hello'))
        content_type = ResourceFile(data).info(0x10).entry.content_type
        self.assertEqual(content_type, 0x55)
        self.assertNotIsInstance(content_type, ContentType)

    def test_offsets_are_aligned(self):
        data = make_archive(
            (0x10, ContentType.String, 0, B'A'),
            (0x11, ContentType.String, 0, B'BBBBB'),
            (0x12, ContentType.String, 0, B'CCCC'),
            (0x13, ContentType.String, 0, B'DDDDDDD'),
        )
        rf = ResourceFile(data)
        offsets = [info.offset for info in rf]
        self.assertEqual(offsets, [128, 132, 140, 144])
        self.assertEqual(rf.block(0x11), B'BBBBB')
        self.assertEqual(rf.block(0x13), B'DDDDDDD')

    def test_resource_out_of_bounds(self):
        data = make_archive((0x10, ContentType.String, 0, B'hello'))
        rf = ResourceFile(data)
        rf.info(0x10).entry.length_packed = len(data)
        with self.assertRaises(FormatError):
            rf.raw(0x10)

    def test_packed_resource(self):
        payload = B'System Shock'
        data = make_archive((0x20, ContentType.String, ResourceFlags.Packed, packed_literals(payload), len(payload)))
        rf = ResourceFile(data)
        self.assertEqual(rf.block(0x20), payload)
        self.assertEqual(rf.blocks(0x20), [payload])
        self.assertEqual(rf.block_count(0x20), 1)

    def test_compound_resource(self):
        chunks = [B'0123456789', B'abcdefghijklmno', B'XYZ']
        data = make_archive((0x30, ContentType.Image, ResourceFlags.Compound, make_compound(*chunks)))
        rf = ResourceFile(data)
        self.assertEqual(rf.block_count(0x30), 3)
        self.assertEqual(rf.blocks(0x30), chunks)
        for k, chunk in enumerate(chunks):
            self.assertEqual(rf.block(0x30, k), chunk)

    def test_packed_compound_resource(self):
        chunks = [B'0123456789', B'abcdefghijklmno', B'XYZ']
        table = CompoundBlockTable.FromChunks(chunks).build()
        raw = bytes(table) + packed_literals(B''.join(chunks))
        unpacked = len(table) + sum(len(c) for c in chunks)
        flags = ResourceFlags.Compound | ResourceFlags.Packed
        data = make_archive((0x31, ContentType.Image, flags, raw, unpacked))
        rf = ResourceFile(data)
        self.assertEqual(rf.blocks(0x31), chunks)
        self.assertEqual(rf.block(0x31, 2), B'XYZ')
        self.assertEqual(rf.block(0x31, 1), B'abcdefghijklmno')
        self.assertEqual(rf.block(0x31, 0), B'0123456789')

    def test_block_isolation_with_table_offsets(self):
        filler = bytes(range(0x41, 0x41 + 11))
        payload = struct.pack('<HIII', 2, 0, 10, 25) + filler
        self.assertEqual(len(payload), 25)
        data = make_archive((0x40, ContentType.Font, ResourceFlags.Compound, payload))
        rf = ResourceFile(data)
        self.assertEqual(rf.block(0x40, 1), payload[10:25])
        self.assertEqual(rf.block(0x40, 0), payload[0:10])
        raw = payload[:14] + packed_literals(filler)
        flags = ResourceFlags.Compound | ResourceFlags.Packed
        data = make_archive((0x41, ContentType.Font, flags, raw, 25))
        rf = ResourceFile(data)
        self.assertEqual(rf.block(0x41, 1), payload[10:25])
        self.assertEqual(rf.blocks(0x41), [payload[0:10], payload[10:25]])

    def test_block_index_error(self):
        data = make_archive(
            (0x10, ContentType.String, 0, B'hello'),
            (0x11, ContentType.String, ResourceFlags.Compound, make_compound(B'a', B'b')),
        )
        rf = ResourceFile(data)
        with self.assertRaises(BlockIndexError) as context:
            rf.block(0x10, 1)
        self.assertEqual(context.exception.count, 1)
        with self.assertRaises(BlockIndexError):
            rf.block(0x11, 2)
        with self.assertRaises(BlockIndexError):
            rf.block(0x11, -1)
        with self.assertRaises(KeyError):
            rf.block(0x12)

    def test_array(self):
        data = make_archive(
            (0x10, ContentType.Obj3D, 0, struct.pack('<3H', 1, 2, 3)),
            (0x11, ContentType.Obj3D, 0, B'hello'),
        )
        rf = ResourceFile(data)
        self.assertEqual(rf.array(0x10, 'H'), [(1,), (2,), (3,)])
        self.assertEqual(rf.array(0x10, '>H'), [(0x100,), (0x200,), (0x300,)])
        with self.assertRaises(SizeMismatchError):
            rf.array(0x11, 'H')
        with self.assertRaises(SizeMismatchError):
            rf.array(0x10, 'I')

    def test_array_with_empty_record(self):
        rf = ResourceFile(make_archive((0x10, ContentType.Obj3D, 0, B'abcd')))
        for spec in ('', '<', '0H'):
            with self.assertRaises(SizeMismatchError):
                rf.array(0x10, spec)

    def test_header_size(self):
        data = make_archive()
        self.assertEqual(len(FileHeader.Parse(data)), FileHeader.Size)
        self.assertEqual(len(ResourceFile(data)), 0)
