#!/usr/bin/env python3
"""
LZW Compression Tool (Reset Mode, fixed 16-bit codes)

Implements LZW compression with the "Reset" policy: when the dictionary
reaches maximum size (65535 entries), it is discarded and reseeded with the
256 single-byte entries, then learning starts over.

Dictionary Model:
- Every entry is a (prefix code, byte) pair
- Base alphabet: bytes 0..255 get codes 0..255, prefix = CLEAR
- CLEAR (65535) is never assigned; it means "no prefix"
- Encoder: dict keyed by (prefix, byte) -> code
- Decoder: list indexed by code -> (prefix, byte)

Code Stream Format:
- Every code is written as a little-endian unsigned 16-bit integer
- No header, no EOF marker, no padding

Usage:
    Compress:   python3 lzw_reset.py --compress input.bin output.lzw
    Decompress: python3 lzw_reset.py --dcompress input.lzw output.bin
"""

import os
import sys
import struct
import argparse
from typing import Dict, Iterable, List, Optional, Tuple

# Code space
CODE_BITS = 16
CLEAR = (1 << CODE_BITS) - 1   # 65535, sentinel "no prefix"
DICT_MAX_SIZE = CLEAR          # Codes 0..65534 are assignable
ALPHABET_SIZE = 256            # One base entry per byte value

CODE_FORMAT = '<H'
CODE_SIZE = struct.calcsize(CODE_FORMAT)

BUFFER_SIZE = 1024 * 1024

# ============================================================================
# ERRORS
# ============================================================================

class LZWError(ValueError):
    """Base class for malformed code streams."""


class InvalidCode(LZWError):
    """A code references a dictionary entry that cannot exist yet."""

    def __init__(self, code, dict_size, position):
        self.code = code
        self.dict_size = dict_size
        self.position = position
        super().__init__(
            f"Invalid codeword: {code} at code position {position} "
            f"(dictionary size {dict_size})")


class CorruptStream(LZWError):
    """The code stream ends with an incomplete code."""

    def __init__(self, offset):
        self.offset = offset
        super().__init__(
            f"Corrupted file: incomplete code at byte offset {offset}")

# ============================================================================
# CODE STREAM I/O
# ============================================================================
# Codes are fixed-width, so every code is exactly CODE_SIZE bytes.
# These classes batch the codes into large reads and writes.

def pack_codes(codes: Iterable[int]) -> bytes:
    """Serialize codes to the wire format."""
    codes = list(codes)
    return struct.pack(f'<{len(codes)}H', *codes)


def unpack_codes(data: bytes) -> List[int]:
    """Parse the wire format. Raises CorruptStream on a partial trailing code."""
    if len(data) % CODE_SIZE:
        raise CorruptStream(len(data) - len(data) % CODE_SIZE)
    return [code for (code,) in struct.iter_unpack(CODE_FORMAT, data)]


class CodeWriter:
    """
    Writes 16-bit codes to a binary file object.

    Codes are accumulated in a bytearray and written out once the buffer
    holds buffer_size bytes. close() flushes the rest but leaves the
    underlying file open; the caller owns it.
    """

    def __init__(self, file, buffer_size=BUFFER_SIZE):
        self.file = file
        self.buffer_size = buffer_size
        self.buffer = bytearray()
        self.bytes_written = 0

    def write(self, code: int) -> None:
        self.buffer += struct.pack(CODE_FORMAT, code)
        if len(self.buffer) >= self.buffer_size:
            self.flush()

    def write_all(self, codes: Iterable[int]) -> None:
        for code in codes:
            self.write(code)

    def flush(self) -> None:
        if self.buffer:
            self.file.write(self.buffer)
            self.bytes_written += len(self.buffer)
            self.buffer = bytearray()

    def close(self) -> None:
        """Flush any buffered codes."""
        self.flush()


class CodeReader:
    """
    Reads 16-bit codes from a binary file object.

    Mirrors CodeWriter. Iterating yields one code at a time. A read may
    return an odd number of bytes (pipes, short reads), so a leftover byte
    is carried over to the next chunk. Only at EOF is a leftover byte an error.
    """

    def __init__(self, file, buffer_size=BUFFER_SIZE):
        self.file = file
        self.buffer_size = buffer_size
        self.bytes_read = 0

    def __iter__(self):
        pending = b''
        while True:
            chunk = self.file.read(self.buffer_size)
            if not chunk:
                break
            self.bytes_read += len(chunk)
            data = pending + chunk
            usable = len(data) - len(data) % CODE_SIZE
            for (code,) in struct.iter_unpack(CODE_FORMAT, data[:usable]):
                yield code
            pending = data[usable:]

        if pending:
            # Offset of the first byte of the incomplete code
            raise CorruptStream(self.bytes_read - len(pending))

# ============================================================================
# LZW ENCODER
# ============================================================================

class Encoder:
    """
    Streaming LZW encoder with dictionary reset.

    Algorithm (per input byte c, current match code i):
    1. If the dictionary is full (65535 entries), reset it to the base alphabet
    2. If (i, c) is in the dictionary, extend the match: i = code(i, c)
    3. Otherwise add (i, c) as the next code, output i, restart the
       match at the single byte c: i = code(CLEAR, c)
    4. At end of input, output the pending match i

    Step 3 never outputs CLEAR: (CLEAR, c) is always a base entry, so the
    first byte of a match is always found.
    """

    def __init__(self, log=False):
        self.log = log
        self.dictionary: Dict[Tuple[int, int], int] = {}
        self.reset_count = 0
        self.current = CLEAR  # Code of the current match
        self._reset_dictionary()

    def _reset_dictionary(self) -> None:
        """Discard learned entries and reseed bytes 0..255 in ascending order."""
        self.dictionary = {(CLEAR, byte): byte for byte in range(ALPHABET_SIZE)}

    def feed(self, data: bytes) -> List[int]:
        """Encode a chunk of input and return the codes it completed."""
        dictionary = self.dictionary
        current = self.current
        output = []

        for byte in data:
            # Dictionary full: start over with the base alphabet
            if len(dictionary) == DICT_MAX_SIZE:
                self._reset_dictionary()
                dictionary = self.dictionary
                self.reset_count += 1
                if self.log:
                    print(f"[RESET] Dictionary full ({DICT_MAX_SIZE} entries), "
                          f"reset #{self.reset_count}")

            code = dictionary.get((current, byte))
            if code is not None:
                # Match still in dictionary - keep extending
                current = code
                continue

            # Longest match found - output it and learn match + byte
            next_code = len(dictionary)
            dictionary[(current, byte)] = next_code
            output.append(current)
            if self.log:
                print(f"[ENCODE] Output code {current}")
                print(f"[DICT] Added ({current}, {byte}) -> {next_code}")

            current = dictionary[(CLEAR, byte)]

        self.current = current
        return output

    def finish(self) -> List[int]:
        """Flush the pending match and return to the initial state."""
        output = []
        if self.current != CLEAR:
            output.append(self.current)
            if self.log:
                print(f"[ENCODE] Output FINAL code {self.current}")

        self.current = CLEAR
        self._reset_dictionary()
        return output

# ============================================================================
# LZW DECODER
# ============================================================================

class Decoder:
    """
    Streaming LZW decoder with dictionary reset.

    The decoder builds each dictionary entry one step after the encoder did:
    the trailing byte of the entry is the first byte of the NEXT decoded
    string. Both sides add exactly one entry per code after the first, so
    they reach the 65535-entry limit and reset at the same logical point.

    Edge cases handled:
    - Code equal to dictionary size: the encoder output the entry it had
      just added (pattern like "aaa" or "ababa"). That string is the previous
      string plus its own first byte.
    - Code greater than dictionary size: InvalidCode
    - Code equal to dictionary size as the very first code: there is no
      previous string to extend, InvalidCode
    """

    def __init__(self, log=False):
        self.log = log
        self.dictionary: List[Tuple[int, int]] = []
        self.reset_count = 0
        self.position = 0      # Index of the next code in the stream
        self.previous = CLEAR  # Previous code
        self.previous_string = b''
        self._reset_dictionary()

    def _reset_dictionary(self) -> None:
        """Discard learned entries and reseed bytes 0..255 in ascending order."""
        self.dictionary = [(CLEAR, byte) for byte in range(ALPHABET_SIZE)]

    def rebuild_string(self, code: int) -> bytes:
        """Follow the prefix chain from code back to CLEAR."""
        dictionary = self.dictionary
        out = bytearray()
        while code != CLEAR:
            code, byte = dictionary[code]
            out.append(byte)
        out.reverse()
        return bytes(out)

    def decode_code(self, code: int) -> bytes:
        """Decode one code and return the bytes it stands for."""
        # Dictionary full: start over with the base alphabet
        if len(self.dictionary) == DICT_MAX_SIZE:
            self._reset_dictionary()
            self.reset_count += 1
            if self.log:
                print(f"[RESET] Dictionary full ({DICT_MAX_SIZE} entries), "
                      f"reset #{self.reset_count}")

            # The encoder resets right after restarting its match at a single
            # byte, so the previous code must survive the reset
            if self.previous >= ALPHABET_SIZE:
                raise InvalidCode(self.previous, ALPHABET_SIZE, self.position - 1)

        dict_size = len(self.dictionary)
        if code > dict_size or (code == dict_size and self.previous == CLEAR):
            raise InvalidCode(code, dict_size, self.position)

        if code == dict_size:
            # SPECIAL LZW EDGE CASE: encoder output the entry it just added.
            # previous_string[0] is the first byte of string(previous)
            self.dictionary.append((self.previous, self.previous_string[0]))
            string = self.rebuild_string(code)
            if self.log:
                print(f"[DICT] Added ({self.previous}, {self.previous_string[0]}) -> {code}")
        else:
            string = self.rebuild_string(code)
            if self.previous != CLEAR:
                self.dictionary.append((self.previous, string[0]))
                if self.log:
                    print(f"[DICT] Added ({self.previous}, {string[0]}) -> {dict_size}")

        if self.log:
            print(f"[DECODE] Code {code} -> {string!r}")

        self.previous = code
        self.previous_string = string
        self.position += 1
        return string

    def feed(self, codes: Iterable[int]) -> bytes:
        """Decode a sequence of codes and return the concatenated bytes."""
        return b''.join(self.decode_code(code) for code in codes)

# ============================================================================
# ONE-SHOT HELPERS
# ============================================================================

def encode(data: bytes, log=False) -> List[int]:
    """Encode a whole byte string to a list of codes."""
    encoder = Encoder(log)
    return encoder.feed(data) + encoder.finish()


def decode(codes: Iterable[int], log=False) -> bytes:
    """Decode a whole sequence of codes to bytes."""
    return Decoder(log).feed(codes)


def compress_bytes(data: bytes) -> bytes:
    return pack_codes(encode(data))


def decompress_bytes(data: bytes) -> bytes:
    return decode(unpack_codes(data))

# ============================================================================
# STREAM AND FILE DRIVERS
# ============================================================================

def compress_stream(src, dst, log=False, buffer_size=BUFFER_SIZE):
    """
    Compress binary file object src into dst.

    Reads src in buffer_size chunks, so memory use does not depend on the
    input size. Returns (bytes_in, bytes_out).
    """
    encoder = Encoder(log)
    writer = CodeWriter(dst, buffer_size)
    bytes_in = 0

    if log:
        print("\n=== COMPRESSION START ===")

    while True:
        chunk = src.read(buffer_size)
        if not chunk:
            break
        bytes_in += len(chunk)
        writer.write_all(encoder.feed(chunk))

    writer.write_all(encoder.finish())
    writer.close()

    if log:
        print(f"Resets: {encoder.reset_count}")
        print("\n=== COMPRESSION END ===\n")
    return bytes_in, writer.bytes_written


def decompress_stream(src, dst, log=False, buffer_size=BUFFER_SIZE):
    """
    Decompress binary file object src into dst.

    Output is written as it is decoded; buffering is left to dst.
    Returns (bytes_in, bytes_out).
    """
    decoder = Decoder(log)
    reader = CodeReader(src, buffer_size)
    bytes_out = 0

    if log:
        print("\n=== DECOMPRESSION START ===")

    for code in reader:
        string = decoder.decode_code(code)
        dst.write(string)
        bytes_out += len(string)

    if log:
        print(f"Resets: {decoder.reset_count}")
        print("\n=== DECOMPRESSION END ===\n")
    return reader.bytes_read, bytes_out


def _check_distinct(input_file, output_file):
    if os.path.abspath(input_file) == os.path.abspath(output_file):
        raise ValueError(f"input_file `{input_file}' and output_file must be distinct files")


def compress(input_file, output_file, log=False):
    """
    Compress a file using LZW with dictionary reset.

    Args:
        input_file: File to compress (any binary content)
        output_file: Compressed output file
        log: Print dictionary events while compressing
    """
    _check_distinct(input_file, output_file)

    with open(input_file, 'rb') as src, open(output_file, 'wb') as dst:
        bytes_in, bytes_out = compress_stream(src, dst, log)

    percent = (bytes_out / bytes_in * 100) if bytes_in > 0 else 0
    print(f"Compressed: {input_file} -> {output_file} "
          f"({bytes_in:,} B -> {bytes_out:,} B, {percent:.1f}% of original)")


def decompress(input_file, output_file, log=False):
    """
    Decompress a file compressed with LZW reset mode.

    Raises InvalidCode or CorruptStream if the input is not a valid code
    stream. The output file may hold partial output in that case.
    """
    _check_distinct(input_file, output_file)

    with open(input_file, 'rb') as src, open(output_file, 'wb') as dst:
        decompress_stream(src, dst, log)

    print(f"Decompressed: {input_file} -> {output_file}")

# ============================================================================
# COMMAND-LINE INTERFACE
# ============================================================================

class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1 like every other failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def main(argv: Optional[List[str]] = None):
    """Parse command-line arguments and run compression or decompression."""
    parser = _ArgumentParser(
        description='LZW compression (reset mode, 16-bit codes)',
        epilog='Examples:\n'
               '  lzw_reset.py --compress input.bmp output.lzw\n'
               '  lzw_reset.py --dcompress input.lzw output.bmp',
        formatter_class=argparse.RawDescriptionHelpFormatter)

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--compress', dest='mode', action='store_const', const='compress')
    mode.add_argument('--dcompress', '--decompress', dest='mode',
                      action='store_const', const='decompress')
    parser.add_argument('input')
    parser.add_argument('output')
    parser.add_argument('--log', action='store_true', help='Enable detailed logging')

    args = parser.parse_args(argv)

    try:
        if args.mode == 'compress':
            compress(args.input, args.output, args.log)
        else:
            decompress(args.input, args.output, args.log)
    except OSError as e:
        print(f"File input/output failure: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == '__main__':
    main()
