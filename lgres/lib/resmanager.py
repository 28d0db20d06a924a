"""
The resource table merges the resources of several resource files and writes them back as a
single resource file. Resources of later files take precedence, but only chunk by chunk: an empty
chunk in a later file keeps the data of the earlier one. This is the modding convention of the
System Shock community, where a patch archive only needs to contain the blocks that it changes.
"""
from __future__ import annotations

from typing import Iterator, Optional

from lgres.lib.environment import Logger, environment, logger
from lgres.lib.resfile import (
    CompoundBlockTable,
    ContentType,
    DirectoryEntry,
    DirectoryHeader,
    FileHeader,
    ResourceFile,
    ResourceFlags,
    content_type_name,
)
from lgres.lib.structures import StructWriter, UINT24_MAX
from lgres.lib.types import buf

RESERVED_IDS = range(3)
DEFAULT_COMMENT = 'Built with lgres'


def unpacked_flags(flags: ResourceFlags | int) -> ResourceFlags:
    """
    Clear the packed flag and keep every other bit, including bits that have no name.
    """
    return ResourceFlags(int(flags) & ~int(ResourceFlags.Packed))


class ResolvedResource:
    """
    A resource whose data has been unpacked and merged from one or more resource files.
    """
    __slots__ = 'id', 'content_type', 'flags', 'chunks', 'length'

    def __init__(self, id: int, content_type: ContentType | int, flags: ResourceFlags, chunks: list[bytearray]):
        self.id = id
        self.content_type = content_type
        self.flags = unpacked_flags(flags)
        self.chunks = chunks
        self.length = 0
        self.update_length()

    def update_length(self):
        length = sum(len(chunk) for chunk in self.chunks)
        if self.flags.Compound:
            length += CompoundBlockTable.SizeFor(len(self.chunks))
        if length > UINT24_MAX:
            raise ValueError(F'Resource {self.id:#06x} has a length of {length} bytes, which exceeds the format limit.')
        self.length = length

    def merge(self, content_type: ContentType | int, flags: ResourceFlags, chunks: list[bytearray]) -> list[int]:
        """
        Merge the chunks of a newer version of this resource. Returns the indices of the chunks
        that were replaced.
        """
        patched = []
        merged = list(self.chunks)
        merged.extend(bytearray() for _ in range(len(chunks) - len(merged)))
        for k, chunk in enumerate(chunks):
            if not chunk:
                continue
            merged[k] = chunk
            patched.append(k)
        self.content_type = content_type
        self.flags = unpacked_flags(flags)
        self.chunks = merged
        self.update_length()
        return patched

    @property
    def entry(self) -> DirectoryEntry:
        return DirectoryEntry.New(
            id=self.id,
            length_unpacked=self.length,
            flags=self.flags,
            length_packed=self.length,
            content_type=self.content_type,
        )

    def write(self, writer: StructWriter):
        if self.flags.Compound:
            CompoundBlockTable.FromChunks(self.chunks).write(writer)
        for chunk in self.chunks:
            writer.write(chunk)
        writer.pad((4 - self.length) & 3)

    def __repr__(self):
        return F'<ResolvedResource:{self.id:04X}:{content_type_name(self.content_type)}:{len(self.chunks)}>'


class ResourceTable:
    """
    The table of resolved resources for one run. Resource files are merged into the table with
    `lgres.lib.resmanager.ResourceTable.ingest` and the result is written with
    `lgres.lib.resmanager.ResourceTable.serialize`.
    """

    def __init__(self, log: Optional[Logger] = None):
        self.resources: dict[int, ResolvedResource] = {}
        self.log = log or logger(__name__)

    def __len__(self):
        return len(self.resources)

    def __iter__(self) -> Iterator[ResolvedResource]:
        return iter(self.resources.values())

    def __contains__(self, resource_id: int):
        return resource_id in self.resources

    def __getitem__(self, resource_id: int) -> ResolvedResource:
        return self.resources[resource_id]

    def ingest(self, resfile: ResourceFile | buf, name: str = 'input') -> ResourceTable:
        """
        Merge all resources of the given resource file into the table.
        """
        if not isinstance(resfile, ResourceFile):
            resfile = ResourceFile(resfile)
        for info in resfile:
            entry = info.entry
            rid = entry.id
            if rid in RESERVED_IDS:
                self.log.warning(F'{name}: skipping resource with reserved id {rid}.')
                continue
            chunks = resfile.blocks(rid)
            type_name = content_type_name(entry.content_type)
            if entry.flags.Packed:
                self.log.warning(F'{name}/{rid:04X}: packing is not supported, the resource will be stored unpacked.')
            try:
                resolved = self.resources[rid]
            except KeyError:
                self.log.info(F'{name}: adding {rid:04X} type: {type_name}')
                self.resources[rid] = ResolvedResource(rid, entry.content_type, entry.flags, chunks)
                continue
            if resolved.content_type != entry.content_type:
                self.log.warning(
                    F'{name}/{rid:04X}: content types do not match; old: {content_type_name(resolved.content_type)} '
                    F'new: {type_name}. The new content type will be used.')
            for k in resolved.merge(entry.content_type, entry.flags, chunks):
                self.log.info(F'{name}: patching {rid:04X}/{k} type: {type_name}')
        return self

    def serialize(self, comment: Optional[str] = None) -> bytearray:
        """
        Write all resolved resources into a new resource file and return its contents.
        """
        if comment is None:
            comment = environment.comment.value or DEFAULT_COMMENT
        writer = StructWriter()
        header = FileHeader.New(comment=comment, reserved=bytes(FileHeader.ReservedLength), directory_offset=0)
        header.write(writer)
        data_offset = writer.tell()
        for resource in self:
            resource.write(writer)
        directory_offset = writer.tell()
        DirectoryHeader.New(count=len(self), data_offset=data_offset).write(writer)
        for resource in self:
            resource.entry.write(writer)
        header.directory_offset = directory_offset
        with writer.detour(0):
            header.write(writer)
        return writer.getvalue()
