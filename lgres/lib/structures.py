"""
Interfaces and classes to read and write structured data.
"""
from __future__ import annotations

import abc
import enum
import functools
import io

from typing import TYPE_CHECKING, Generic, Iterable, TypeVar, Union, cast

if TYPE_CHECKING:
    from typing import Generator, Self

    from lgres.lib.types import buf

    T = TypeVar('T', bound=Union[bytearray, bytes, memoryview])
else:
    T = TypeVar('T')


UINT24_MAX = 0xFFFFFF


def u24_decode(data: buf) -> int:
    """
    Decode an unsigned little-endian 24-bit integer from the first three bytes of the input.
    """
    if len(data) < 3:
        raise EOF(3, data)
    return data[0] | data[1] << 8 | data[2] << 16


def u24_encode(value: int) -> bytes:
    """
    Encode an unsigned integer as three little-endian bytes.
    """
    if value not in range(UINT24_MAX + 1):
        raise ValueError(F'The value {value} cannot be encoded as an unsigned 24-bit integer.')
    return bytes((value & 0xFF, value >> 8 & 0xFF, value >> 16 & 0xFF))


def align(value: int, blocksize: int = 4) -> int:
    """
    Round the given value up to the next multiple of the block size.
    """
    return value + (-value % blocksize)


class EOF(EOFError):
    """
    While reading from a `lgres.lib.structures.MemoryFile`, less bytes were available than
    requested. The exception contains the data from the incomplete read.
    """
    def __init__(self, size: int, rest: buf = B''):
        super().__init__(F'Unexpected end of buffer; attempted to read {size} bytes, but got only {len(rest)}.')
        self.rest = rest
        self.size = size


class StreamDetour:
    """
    A stream detour is used as a context manager to temporarily read from a different location
    in the stream and then return to the original offset when the context ends.
    """
    def __init__(self, stream: io.IOBase, offset: int | None = None, whence: int = io.SEEK_SET):
        self.stream = stream
        self.offset = offset
        self.whence = whence

    def __enter__(self):
        self.cursor = self.stream.tell()
        if self.offset is not None:
            self.stream.seek(self.offset, self.whence)
        return self

    def __exit__(self, *args):
        self.stream.seek(self.cursor, io.SEEK_SET)


class MemoryFile(io.RawIOBase, Generic[T]):
    """
    A thin wrapper around (potentially mutable) byte sequences which gives it the features of a
    file-like object. Writing is only possible when the underlying buffer is a `bytearray`.
    """
    _data: T
    _cursor: int

    def __init__(self, data: T | None = None) -> None:
        if data is None:
            data = cast('T', bytearray())
        if not isinstance(data, (bytearray, bytes, memoryview)):
            raise TypeError(F'Invalid input: {data!r}.')
        self._data = data
        self._cursor = 0

    def __bytes__(self):
        return bytes(self._data)

    def __len__(self):
        return len(self._data)

    def readable(self) -> bool:
        return not self.closed

    def seekable(self) -> bool:
        return not self.closed

    def writable(self) -> bool:
        if self.closed:
            return False
        return isinstance(self._data, bytearray)

    @property
    def remaining_bytes(self) -> int:
        return len(self._data) - self.tell()

    def detour(self, offset: int | None = None, whence: int = io.SEEK_SET):
        return StreamDetour(self, offset, whence=whence)

    def read(self, size: int | None = None, peek: bool = False) -> T:
        beginning = self._cursor
        if size is None or size < 0:
            end = len(self._data)
        else:
            end = min(self._cursor + size, len(self._data))
        result = self._data[beginning:end]
        if not peek:
            self._cursor = end
        return result

    def tell(self) -> int:
        return self._cursor

    def seekset(self, offset: int) -> int:
        if offset < 0:
            return self.seek(offset, io.SEEK_END)
        else:
            return self.seek(offset, io.SEEK_SET)

    def getbuffer(self) -> memoryview:
        return memoryview(self._data)

    def getvalue(self) -> T:
        return self._data

    def seek(self, offset: int, whence=io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            if offset < 0:
                raise ValueError('no negative offsets allowed for SEEK_SET.')
            self._cursor = offset
        elif whence == io.SEEK_CUR:
            self._cursor += offset
        elif whence == io.SEEK_END:
            self._cursor = len(self._data) + offset
        self._cursor = max(self._cursor, 0)
        self._cursor = min(self._cursor, len(self._data))
        return self._cursor

    def write(self, data: buf | Iterable[int]) -> int:
        out = self._data
        if not isinstance(out, bytearray):
            raise PermissionError
        if not isinstance(data, (bytes, bytearray, memoryview)):
            data = bytes(data)
        beginning = self._cursor
        size = len(data)
        self._cursor += size
        out[beginning:self._cursor] = data
        return size


class StructReader(MemoryFile[T]):
    """
    An extension of a `lgres.lib.structures.MemoryFile` which provides methods to read
    structured data.
    """
    def __init__(self, data: T | StructReader[T], bigendian: bool | None = None):
        if isinstance(data, StructReader):
            if bigendian is None:
                bigendian = data.bigendian
            data = data.getvalue()
        super().__init__(data)
        self.bigendian = bool(bigendian)

    @property
    def byteorder_name(self):
        return 'big' if self.bigendian else 'little'

    def read_exactly(self, size: int | None = None, peek: bool = False) -> T:
        """
        Read bytes from the underlying stream. Raises an exception of type
        `lgres.lib.structures.EOF` when fewer data is available in the stream than requested via
        the `size` parameter. The remaining data can be extracted from the exception.
        """
        data = self.read(size, peek)
        if size and len(data) < size:
            raise EOF(size, data)
        return data

    def read_integer(self, size: int, peek: bool = False, signed: bool = False) -> int:
        """
        Read an integer of the given size (in bits) from the stream.
        """
        nbytes, rest = divmod(size, 8)
        if rest > 0:
            raise ValueError(
                F'A {self.__class__.__name__} cannot read {size} bit{"s" * (size > 1)}, only multiples of 8 are possible.')
        data = self.read(nbytes, peek)
        if len(data) < nbytes:
            raise EOF(nbytes, data)
        return int.from_bytes(data, self.byteorder_name, signed=signed)

    def read_bytes(self, size: int, peek: bool = False) -> bytes:
        data = self.read_exactly(size, peek)
        if not isinstance(data, bytes):
            data = bytes(data)
        return data

    def read_byte(self, peek: bool = False) -> int:
        try:
            b = self._data[self._cursor]
        except IndexError:
            raise EOF(1)
        if not peek:
            self._cursor += 1
        return b

    u8 = read_byte

    def u16(self, peek: bool = False) -> int:
        return self.read_integer(16, peek)

    def u24(self, peek: bool = False) -> int:
        if self.bigendian:
            return self.read_integer(24, peek)
        return u24_decode(self.read_exactly(3, peek))

    def u32(self, peek: bool = False) -> int:
        return self.read_integer(32, peek)

    def read_fixed_string(self, size: int, terminators: bytes = B'\0', codec: str = 'latin1') -> str:
        """
        Read a fixed-size region and decode the text up to the first terminator byte.
        """
        data = self.read_bytes(size)
        end = min((k for k, b in enumerate(data) if b in terminators), default=size)
        return data[:end].decode(codec)


class StructWriter(MemoryFile[bytearray]):
    """
    The counterpart to `lgres.lib.structures.StructReader` that writes fixed-layout records into
    a growing `bytearray`.
    """
    def __init__(self, data: bytearray | None = None, bigendian: bool = False):
        super().__init__(bytearray() if data is None else data)
        self.bigendian = bigendian

    @property
    def byteorder_name(self):
        return 'big' if self.bigendian else 'little'

    def write_integer(self, value: int, size: int) -> int:
        """
        Write an unsigned integer of the given size (in bits) to the stream.
        """
        nbytes, rest = divmod(size, 8)
        if rest > 0:
            raise ValueError(F'Cannot write an integer of {size} bits, only multiples of 8 are possible.')
        try:
            encoded = value.to_bytes(nbytes, self.byteorder_name)
        except OverflowError as OE:
            raise ValueError(F'The value {value} does not fit into {size} bits.') from OE
        return self.write(encoded)

    def u8(self, value: int):
        return self.write_integer(value, 8)

    def u16(self, value: int):
        return self.write_integer(value, 16)

    def u24(self, value: int):
        if self.bigendian:
            return self.write_integer(value, 24)
        return self.write(u24_encode(value))

    def u32(self, value: int):
        return self.write_integer(value, 32)

    def write_fixed_string(self, text: str, size: int, terminator: int | None = None, codec: str = 'latin1'):
        """
        Write text into a region of fixed size. The text is truncated so that the terminator
        still fits, if one is given, and the rest of the region is filled with zero bytes.
        """
        data = text.encode(codec)
        room = size if terminator is None else size - 1
        data = bytearray(data[:room])
        if terminator is not None:
            data.append(terminator)
        data.extend(bytes(size - len(data)))
        return self.write(data)

    def pad(self, count: int):
        return self.write(bytes(count))


class StructMeta(abc.ABCMeta):
    """
    A metaclass to facilitate the behavior outlined for `lgres.lib.structures.Struct`.
    """
    def __new__(mcls, name, bases, namespace: dict):
        def parse(cls, reader, *args, **kwargs):
            if not isinstance(reader, StructReader):
                reader = StructReader(reader)
            return cls(reader, *args, **kwargs)
        namespace.update(Parse=classmethod(parse))
        return super().__new__(mcls, name, bases, namespace)

    def __init__(cls, name, bases, nmspc, **_):
        super().__init__(name, bases, nmspc)
        original__init__ = cls.__init__
        if getattr(original__init__, '__wrapped_struct__', False):
            return

        @functools.wraps(original__init__)
        def wrapped__init__(self: Struct, reader: StructReader, *args, **kwargs):
            start = reader.tell()
            view = reader.getbuffer()
            original__init__(self, reader, *args, **kwargs)
            self._data = view[start:reader.tell()]
            del view

        wrapped__init__.__wrapped_struct__ = True
        setattr(cls, '__init__', wrapped__init__)


class Struct(metaclass=StructMeta):
    """
    A class to parse structured data. A `lgres.lib.structures.Struct` class can be instantiated
    as follows:

        foo = Struct.Parse(data, bar=29)

    The initialization routine of the structure will be called with a single argument `reader`.
    If the object `data` is already a `lgres.lib.structures.StructReader`, then it will be passed
    as `reader`. Otherwise, the argument will be wrapped in a `lgres.lib.structures.StructReader`.
    Additional arguments to the struct are passed through. Subclasses that can be written back
    implement `write`, which receives a `lgres.lib.structures.StructWriter`.
    """
    _data: memoryview | bytearray

    @classmethod
    def Parse(cls, reader, *args, **kwargs) -> Self:
        ...

    @classmethod
    def New(cls, **fields) -> Self:
        """
        Create a structure in memory from the given field values rather than by parsing it.
        """
        self = cls.__new__(cls)
        self.__dict__.update(fields)
        self._data = memoryview(self.build())
        return self

    def __len__(self):
        return len(self._data)

    def __bytes__(self):
        return bytes(self._data)

    def __init__(self, reader: StructReader, *args, **kwargs):
        pass

    def write(self, writer: StructWriter) -> None:
        raise NotImplementedError

    def build(self) -> bytearray:
        writer = StructWriter()
        self.write(writer)
        return writer.getvalue()


class FlagAccessMixin:
    """
    This class can be mixed into an `enum.IntFlag` for some quality of life improvements. Firstly,
    you can now access flags as follows:

        class Flags(FlagAccessMixin, enum.IntFlag):
            IsBinary = 1
            IsCompressed = 2

        flag = Flags(3)

        if flag.IsCompressed:
            decompress()

    Furthermore, flag values can be enumerated and are represented by their names.
    """
    def __getattribute__(self, name: str):
        if not isinstance(self, enum.IntFlag):
            raise RuntimeError
        if not name.startswith('_'):
            try:
                flag = self.__class__[name]
            except KeyError:
                pass
            else:
                return flag in self
        return super().__getattribute__(name)

    def __iter__(self) -> Generator[Self]:
        if not isinstance(self, enum.IntFlag):
            raise RuntimeError
        for flag in self.__class__:
            if flag in self:
                yield flag

    def __repr__(self):
        if not isinstance(self, enum.IntFlag):
            raise RuntimeError
        names = [flag.name for flag in self.__class__ if flag and flag in self]
        if names:
            return '|'.join(names)
        return '0'

