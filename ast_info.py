#!/usr/bin/env python3
"""
ast_info.py

Show the header fields and block layout of an AST file.

Example:
  python ast_info.py "D:\\Games\\SMG\\AudioRes\\Stream\\track.ast"
"""

import argparse
import os
import struct

from ast_writer import (
    BLOCK_HEADER_SIZE,
    HEADER_SIZE,
    BLOCK_HEADER_FMT,
    HEADER_FMT,
)
from wav_reader import ConversionError


class InvalidAstFile(ConversionError):
    pass


def read_ast_info(filepath):
    """
    Parse the STRM header and walk the BLCK chain of `filepath`.

    Returns a dict of header fields plus block_count and last_block_size.
    Raises InvalidAstFile if the file does not hold together.
    """
    filesize = os.path.getsize(filepath)

    with open(filepath, "rb") as f:
        data = f.read(HEADER_SIZE)
        if len(data) < HEADER_SIZE:
            raise InvalidAstFile("File is too small to hold an AST header.")

        (
            magic,
            stream_size,
            audio_format,
            bit_depth,
            channels,
            looped,
            sample_rate,
            total_samples,
            loop_start,
            loop_end,
            first_block_size,
            _reserved,
            volume,
        ) = struct.unpack(HEADER_FMT, data)

        if magic != b"STRM":
            raise InvalidAstFile(f"Bad magic {magic!r}, expected b'STRM'.")
        if filesize != HEADER_SIZE + stream_size:
            raise InvalidAstFile(
                f"Header says {HEADER_SIZE + stream_size} bytes, file has {filesize}.")
        if channels == 0:
            raise InvalidAstFile("Header declares zero channels.")

        block_count = 0
        block_size = last_block_size = 0
        offset = HEADER_SIZE
        while offset < filesize:
            f.seek(offset)
            raw = f.read(BLOCK_HEADER_SIZE)
            if len(raw) < BLOCK_HEADER_SIZE:
                raise InvalidAstFile(f"Truncated block header @ {offset}.")
            block_magic, block_size = struct.unpack(BLOCK_HEADER_FMT, raw)
            if block_magic != b"BLCK":
                raise InvalidAstFile(f"Bad block magic {block_magic!r} @ {offset}.")
            if any(raw[8:]):
                raise InvalidAstFile(f"Non-zero reserved bytes in block header @ {offset}.")
            last_block_size = block_size
            block_count += 1
            offset += BLOCK_HEADER_SIZE + block_size * channels

    if offset != filesize:
        raise InvalidAstFile(f"Last block overruns the file by {offset - filesize} bytes.")

    return {
        "stream_size": stream_size,
        "audio_format": audio_format,
        "bit_depth": bit_depth,
        "channel_count": channels,
        "looped": looped,
        "sample_rate": sample_rate,
        "sample_count": total_samples,
        "loop_start": loop_start,
        "loop_end": loop_end,
        "first_block_size": first_block_size,
        "volume": volume,
        "block_count": block_count,
        "last_block_size": last_block_size,
    }


def print_mapping(mapping):
    width = max(len(entry) + 1 for entry in mapping)
    for entry, value in mapping.items():
        label = entry.title().replace("_", " ") + ":"
        print(f"{label: <{width}} {value}")


def main(argv=None):
    ap = argparse.ArgumentParser(description="Print the header and block layout of an AST file.")
    ap.add_argument("file", help="AST file path")
    args = ap.parse_args(argv)

    try:
        info = read_ast_info(args.file)
    except (ConversionError, OSError) as e:
        print(f"[ERR] {e}")
        return 1

    info["looped"] = f"0x{info['looped']:04X}"
    print_mapping(info)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
