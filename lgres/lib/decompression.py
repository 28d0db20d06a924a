"""
The dictionary decompression scheme of LookingGlass resource files. Packed resources are stored as
a sequence of 14-bit codes, read with the most significant bit first. Codes below `0x100` are
literal bytes, the codes `0x3FFE` and `0x3FFF` reset the dictionary and terminate the stream, and
every other code refers to a dictionary entry. Every code that is read creates a dictionary entry
that begins at the current output position; when that entry is referenced later, it expands to
the bytes of the code that created it plus the one byte that followed.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Optional, Union

from lgres.lib.structures import EOF, StructReader
from lgres.lib.types import buf


class PartialResult(ValueError):
    """
    This exception is raised when the input stream ended before decompression was complete. The
    data that was decoded up to that point is available as the `partial` property.
    """
    def __init__(self, msg: str, partial: buf):
        super().__init__(msg)
        self.partial = partial


class LGZ(IntEnum):
    BITS = 14
    END_OF_STREAM = 0x3FFF
    RESET = 0x3FFE
    FIRST = 0x100
    WORDS = 0x3FFE - 0x00FF


class BitBufferedReader:
    """
    A helper class to read bitwise from the compressed input stream. Bits are consumed from the
    most significant end of the bit buffer, which is refilled `bits_per_read` bits at a time.
    """

    def __init__(self, buffer: Union[buf, StructReader], bits_per_read: int = 8):
        if not isinstance(buffer, StructReader):
            buffer = StructReader(memoryview(buffer), bigendian=True)
        self._reader: StructReader = buffer
        self._bit_buffer_data: int = 0
        self._bit_buffer_size: int = 0
        self._bits_per_read = bits_per_read

    def read(self, count: int) -> int:
        offset = self.collect(count)
        bits = self._bit_buffer_data >> offset
        self._bit_buffer_data ^= bits << offset
        self._bit_buffer_size -= count
        return bits

    def collect(self, count: Optional[int] = None) -> int:
        if count is None:
            count = self._bits_per_read
        offset = self._bit_buffer_size - count
        if offset < 0:
            more = count - self._bit_buffer_size
            reads, _r = divmod(more, self._bits_per_read)
            reads += int(bool(_r))
            reads *= self._bits_per_read
            self._bit_buffer_data <<= reads
            self._bit_buffer_data |= self._reader.read_integer(reads)
            self._bit_buffer_size += reads
            offset += reads
        return offset


class DictionaryUnpacker:
    """
    Decoder state for one packed stream. The three dictionary tables are indexed by the code
    index, i.e. the number of codes that were read since the last dictionary reset.
    """

    def __init__(self, data: Union[buf, StructReader]):
        self.reader = BitBufferedReader(data)
        self.reset()

    def reset(self):
        self.offset = [0] * LGZ.WORDS
        self.reference = [-1] * LGZ.WORDS
        self.length = [1] * LGZ.WORDS
        self.index = 0

    def unpack(self, size: Optional[int] = None, skip: int = 0) -> bytearray:
        """
        Decode the stream and return `size` bytes of output after discarding the first `skip`
        decoded bytes. When `size` is `None`, the stream is decoded until the end-of-stream code
        is encountered. If the stream ends early, the output is padded with zeros to `size`.
        """
        limit = None if size is None else skip + size
        # the skipped prefix is kept; later codes can refer back into it
        window = bytearray()
        offset = self.offset
        length = self.length
        reference = self.reference

        while limit is None or len(window) < limit:
            try:
                code = self.reader.read(LGZ.BITS)
            except EOF:
                if size is None:
                    raise PartialResult('The packed stream ended without an end-of-stream code.', window[skip:])
                raise PartialResult(
                    F'The packed stream ended after {max(0, len(window) - skip)} of {size} bytes.', window[skip:])
            if code == LGZ.END_OF_STREAM:
                break
            if code == LGZ.RESET:
                self.reset()
                offset = self.offset
                length = self.length
                reference = self.reference
                continue
            if self.index < LGZ.WORDS:
                offset[self.index] = len(window)
                if code >= LGZ.FIRST:
                    reference[self.index] = code - LGZ.FIRST
            self.index += 1
            if code < LGZ.FIRST:
                window.append(code)
                continue
            value = code - LGZ.FIRST
            if length[value] == 1:
                if reference[value] >= 0:
                    length[value] += length[reference[value]]
                else:
                    length[value] += 1
            start = offset[value]
            count = length[value]
            if limit is not None:
                count = min(count, limit - len(window))
            if start + count <= len(window):
                window.extend(window[start:start + count])
                continue
            for k in range(start, start + count):
                if k >= len(window):
                    raise ValueError(
                        F'Corrupt input; code {code:#06x} refers to output offset {k} which was not yet decoded.')
                window.append(window[k])

        output = window[skip:]
        if size is not None and len(output) < size:
            output.extend(bytes(size - len(output)))
        return output


def unpack(data: Union[buf, StructReader], size: Optional[int] = None, skip: int = 0) -> bytearray:
    """
    Decode a packed stream, see `lgres.lib.decompression.DictionaryUnpacker.unpack`.
    """
    return DictionaryUnpacker(data).unpack(size, skip)
