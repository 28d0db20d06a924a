"""
Parsing of LookingGlass resource files (`LG Res File v2`), as they are used by System Shock and
related games. A resource file consists of a fixed header, a region of resource payloads that are
each aligned to four bytes, and a directory that is usually stored at the end of the file:

    FileHeader        signature, comment, reserved bytes, directory offset
    payloads          one per directory entry, possibly packed and/or compound
    DirectoryHeader   number of entries, offset of the first payload
    DirectoryEntry    repeated for every resource

A compound resource is subdivided into blocks. Its payload starts with a block count and a table of
`count + 1` offsets that delimit the blocks, measured from the start of the unpacked payload. For
packed compound resources, the table is stored uncompressed and only the data that follows it is
packed.
"""
from __future__ import annotations

import enum
import struct

from typing import Iterator, NamedTuple

from lgres.lib.decompression import unpack
from lgres.lib.structures import (
    EOF,
    FlagAccessMixin,
    Struct,
    StructReader,
    StructWriter,
    align,
)
from lgres.lib.types import buf


class FormatError(ValueError):
    """
    The input is not a resource file or its directory is damaged.
    """


class BlockIndexError(IndexError, ValueError):
    """
    A block index was requested that the resource does not have.
    """
    def __init__(self, resource_id: int, index: int, count: int):
        super().__init__(
            F'Resource {resource_id:#06x} has only {count} block{"s" * (count != 1)}; block {index} was requested.')
        self.resource_id = resource_id
        self.index = index
        self.count = count


class SizeMismatchError(ValueError):
    """
    A block was read as an array of records whose size does not divide the length of the block.
    """


class ContentType(enum.IntEnum):
    Palette = 0x00
    String = 0x01
    Image = 0x02
    Font = 0x03
    Animation = 0x04
    Voc = 0x07
    Obj3D = 0x0F
    Movie = 0x11
    Map = 0x30

    @classmethod
    def Read(cls, value: int) -> ContentType | int:
        """
        Convert a byte to a content type. Values that do not correspond to a known type are
        returned as plain integers so that they survive a round trip.
        """
        try:
            return cls(value)
        except ValueError:
            return value


def content_type_name(value: int) -> str:
    if isinstance(value, ContentType):
        return value.name
    return F'{value:#04x}'


class ResourceFlags(FlagAccessMixin, enum.IntFlag):
    Packed = 0x01
    Compound = 0x02
    LoadOnOpen = 0x08


class FileHeader(Struct):
    Signature = B'LG Res File v2\r\n'
    SignatureLength = 16
    CommentLength = 96
    ReservedLength = 12
    Size = 128
    CTRL_Z = 0x1A

    def __init__(self, reader: StructReader[memoryview]):
        signature = reader.read_bytes(self.SignatureLength)
        if signature != self.Signature:
            raise FormatError(F'File type is not supported; invalid signature {signature!r}.')
        self.comment = reader.read_fixed_string(self.CommentLength, bytes((0, self.CTRL_Z)), 'latin1')
        self.reserved = reader.read_bytes(self.ReservedLength)
        self.directory_offset = reader.u32()

    def write(self, writer: StructWriter):
        writer.write(self.Signature)
        writer.write_fixed_string(self.comment, self.CommentLength, self.CTRL_Z, 'latin1')
        writer.write(self.reserved.ljust(self.ReservedLength, B'\0')[:self.ReservedLength])
        writer.u32(self.directory_offset)


class DirectoryHeader(Struct):
    Size = 6

    def __init__(self, reader: StructReader[memoryview]):
        self.count = reader.u16()
        self.data_offset = reader.u32()

    def write(self, writer: StructWriter):
        writer.u16(self.count)
        writer.u32(self.data_offset)


class DirectoryEntry(Struct):
    Size = 10

    def __init__(self, reader: StructReader[memoryview]):
        self.id = reader.u16()
        self.length_unpacked = reader.u24()
        self.flags = ResourceFlags(reader.u8())
        self.length_packed = reader.u24()
        self.content_type = ContentType.Read(reader.u8())

    def write(self, writer: StructWriter):
        writer.u16(self.id)
        writer.u24(self.length_unpacked)
        writer.u8(self.flags)
        writer.u24(self.length_packed)
        writer.u8(self.content_type)

    def __repr__(self):
        return (
            F'<DirectoryEntry:{self.id:04X}:{content_type_name(self.content_type)}:'
            F'{self.length_unpacked}/{self.length_packed}:{self.flags!r}>')


class CompoundBlockTable(Struct):
    """
    The block table at the start of a compound payload. The offsets are relative to the start of
    the table itself.
    """
    def __init__(self, reader: StructReader[memoryview]):
        self.count = count = reader.u16()
        self.offsets = [reader.u32() for _ in range(count + 1)]

    @staticmethod
    def SizeFor(count: int) -> int:
        return 2 + 4 * (count + 1)

    @property
    def size(self) -> int:
        return self.SizeFor(self.count)

    @classmethod
    def FromChunks(cls, chunks: list[buf]) -> CompoundBlockTable:
        """
        Build the block table for the given chunks, assuming they are stored back to back right
        after the table.
        """
        offset = cls.SizeFor(len(chunks))
        offsets = [offset]
        for chunk in chunks:
            offset += len(chunk)
            offsets.append(offset)
        return cls.New(count=len(chunks), offsets=offsets)

    def write(self, writer: StructWriter):
        writer.u16(self.count)
        for offset in self.offsets:
            writer.u32(offset)

    def bounds(self, index: int) -> tuple[int, int]:
        start, end = self.offsets[index:index + 2]
        if end < start:
            raise FormatError(F'Block {index} ends at offset {end} before it starts at offset {start}.')
        return start, end


class ResourceInfo(NamedTuple):
    entry: DirectoryEntry
    offset: int

    @property
    def id(self) -> int:
        return self.entry.id


class ResourceFile:
    """
    An index over the resources of one resource file. The resource data is decoded on demand by
    the accessor methods; every accessor returns unpacked data.
    """

    def __init__(self, data: buf):
        view = memoryview(data)
        reader = StructReader(view)
        try:
            self.header = header = FileHeader.Parse(reader)
            reader.seekset(header.directory_offset)
            self.directory = directory = DirectoryHeader.Parse(reader)
            offset = directory.data_offset
            resources: dict[int, ResourceInfo] = {}
            for _ in range(directory.count):
                entry = DirectoryEntry.Parse(reader)
                resources[entry.id] = ResourceInfo(entry, offset)
                offset = align(offset + entry.length_packed)
        except EOF as E:
            raise FormatError(F'The resource directory is truncated: {E!s}') from E
        self._data = view
        self._resources = resources

    def __len__(self):
        return len(self._resources)

    def __iter__(self) -> Iterator[ResourceInfo]:
        return iter(self._resources.values())

    def __contains__(self, resource_id: int):
        return resource_id in self._resources

    @property
    def comment(self) -> str:
        return self.header.comment

    def info(self, resource_id: int) -> ResourceInfo:
        return self._resources[resource_id]

    def raw(self, resource_id: int) -> memoryview:
        """
        Return the payload of a resource as it is stored in the file.
        """
        entry, offset = self.info(resource_id)
        end = offset + entry.length_packed
        if end > len(self._data):
            raise FormatError(
                F'Resource {resource_id:#06x} ends at offset {end} beyond the end of the file at {len(self._data)}.')
        return self._data[offset:end]

    def _block_table(self, resource_id: int) -> CompoundBlockTable:
        try:
            return CompoundBlockTable.Parse(self.raw(resource_id))
        except EOF as E:
            raise FormatError(F'The block table of resource {resource_id:#06x} is truncated.') from E

    def block_count(self, resource_id: int) -> int:
        if not self.info(resource_id).entry.flags.Compound:
            return 1
        return self._block_table(resource_id).count

    def block(self, resource_id: int, index: int = 0) -> bytearray:
        """
        Return the unpacked data of a single block of the given resource.
        """
        entry, _ = self.info(resource_id)
        raw = self.raw(resource_id)
        if not entry.flags.Compound:
            if index != 0:
                raise BlockIndexError(resource_id, index, 1)
            if entry.flags.Packed:
                return unpack(raw, entry.length_unpacked)
            return bytearray(raw)
        table = self._block_table(resource_id)
        if index not in range(table.count):
            raise BlockIndexError(resource_id, index, table.count)
        start, end = table.bounds(index)
        if not entry.flags.Packed:
            if end > len(raw):
                raise FormatError(F'Block {index} of resource {resource_id:#06x} exceeds the resource data.')
            return bytearray(raw[start:end])
        size = table.size
        data = bytearray(raw[start:min(end, size)])
        if end > size:
            skip = max(start, size) - size
            data.extend(unpack(raw[size:], end - size - skip, skip))
        return data

    def blocks(self, resource_id: int) -> list[bytearray]:
        """
        Return the unpacked data of all blocks of the given resource.
        """
        entry, _ = self.info(resource_id)
        if not entry.flags.Compound:
            return [self.block(resource_id)]
        raw = self.raw(resource_id)
        table = self._block_table(resource_id)
        if entry.flags.Packed:
            size = table.size
            payload = bytearray(raw[:size])
            payload.extend(unpack(raw[size:], max(0, entry.length_unpacked - size)))
        else:
            payload = raw
        blocks = []
        for k in range(table.count):
            start, end = table.bounds(k)
            if end > len(payload):
                raise FormatError(F'Block {k} of resource {resource_id:#06x} exceeds the resource data.')
            blocks.append(bytearray(payload[start:end]))
        return blocks

    def array(self, resource_id: int, spec: str, index: int = 0) -> list[tuple]:
        """
        Read one block of a resource as an array of records in the given `struct` format. The
        format is little-endian unless it specifies a byte order.
        """
        if spec[:1] not in '<!=@>':
            spec = F'<{spec}'
        size = struct.calcsize(spec)
        data = self.block(resource_id, index)
        if size == 0 or size > len(data) or len(data) % size != 0:
            raise SizeMismatchError(
                F'Block length {len(data)} of resource {resource_id:#06x} is not divisible by record size {size}.')
        return list(struct.iter_unpack(spec, data))
