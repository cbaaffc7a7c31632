#!/usr/bin/env python3
"""
wav_reader.py

Locate the 'fmt ' and 'data' chunks of a RIFF/WAVE file and pull out what the
AST writer needs: channel count, sample rate, bit depth and where the PCM
payload lives. Chunks may appear in any order, with optional chunks (LIST,
fact, smpl, ...) in between.

Example:
  python wav_reader.py "D:\\Audio\\Music\\Track.wav"
"""

import argparse
import logging
import struct
from dataclasses import dataclass

log = logging.getLogger(__name__)

WAVE_FORMAT_PCM = 1
WAVE_FORMAT_EXTENSIBLE = 65534
MAX_CHANNELS = 16


# --------------------------
# Errors
# --------------------------
class ConversionError(Exception):
    """Base class for every failure that aborts a conversion."""


class InvalidContainer(ConversionError):
    pass


class MissingFormatChunk(ConversionError):
    pass


class MissingDataChunk(ConversionError):
    pass


class UnsupportedBitDepth(ConversionError):
    pass


class InvalidChannelCount(ConversionError):
    pass


@dataclass(frozen=True)
class AudioDescriptor:
    """Format parameters of a 16-bit PCM WAV file."""
    format_tag: int
    channels: int
    sample_rate: int
    bits_per_sample: int
    data_size: int      # byte length declared by the data chunk
    data_offset: int    # stream offset of the first PCM byte

    @property
    def total_samples(self):
        # Per-channel sample count; a trailing partial frame is dropped
        return self.data_size // (2 * self.channels)


# --------------------------
# Chunk scanner
# --------------------------
def find_chunk(f, tag, start=12):
    """
    Walk the chunk list of an open RIFF stream looking for `tag`.

    Returns the offset just past the chunk's 4-byte size field, with the
    stream left there ready to read the payload, or None if the end of the
    stream is reached first.
    """
    f.seek(start)
    while True:
        cid = f.read(4)
        if len(cid) < 4:
            return None
        raw = f.read(4)
        if len(raw) < 4:
            return None
        if cid == tag:
            return f.tell()
        csize = struct.unpack("<I", raw)[0]
        log.debug("Skipping chunk %r (%d bytes) @ %d", cid, csize, f.tell() - 8)
        # Word alignment (chunks are word-aligned)
        f.seek(csize + (csize % 2), 1)


def _read_exact(f, size, what):
    data = f.read(size)
    if len(data) < size:
        raise InvalidContainer(f"Truncated {what} in WAV header.")
    return data


# --------------------------
# Header extractor
# --------------------------
def read_wav_header(f):
    """
    Validate the RIFF/WAVE container and return an AudioDescriptor.

    Non-PCM format tags and channel counts above 16 are logged as warnings and
    the conversion carries on; everything else that is wrong raises a
    ConversionError subclass.
    """
    f.seek(0)
    riff = f.read(4)
    f.seek(8)
    wave_id = f.read(4)
    if riff != b"RIFF" or wave_id != b"WAVE":
        raise InvalidContainer(
            "Header contents of WAV are invalid or corrupted. "
            "Please be sure your input file is a RIFF WAV audio file.")

    if find_chunk(f, b"fmt ") is None:
        raise MissingFormatChunk(
            "No 'fmt' chunk could be found in WAV file. The source file is likely corrupted.")

    fmt = _read_exact(f, 16, "fmt chunk")
    format_tag, channels, sample_rate, _byte_rate, _block_align, bits = struct.unpack("<HHIIHH", fmt)

    if format_tag not in (WAVE_FORMAT_PCM, WAVE_FORMAT_EXTENSIBLE):
        log.warning("Source WAV file may not use PCM! (format tag %d)", format_tag)

    if channels == 0:
        raise InvalidChannelCount("WAV file declares zero channels.")
    if channels > MAX_CHANNELS:
        log.warning("Invalid number of channels (%d)! Please stick with a file containing 1-%d channels.",
                    channels, MAX_CHANNELS)

    if bits != 16:
        raise UnsupportedBitDepth(
            f"Invalid bit depth ({bits})! Please make sure you are using 16-bit PCM.")

    data_offset = find_chunk(f, b"data")
    if data_offset is None:
        raise MissingDataChunk(
            "No 'data' chunk could be found in WAV file. "
            "Either the source contains no audio or is corrupted.")

    f.seek(data_offset - 4)
    data_size = struct.unpack("<I", f.read(4))[0]

    desc = AudioDescriptor(
        format_tag=format_tag,
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits,
        data_size=data_size,
        data_offset=data_offset,
    )
    log.debug("WAV: %s, %d total samples", desc, desc.total_samples)
    return desc


def main():
    ap = argparse.ArgumentParser(description="Print the audio parameters of a 16-bit PCM WAV file.")
    ap.add_argument("file", help="WAV file path")
    args = ap.parse_args()

    logging.basicConfig(format="[%(levelname)s] %(message)s")
    try:
        with open(args.file, "rb") as f:
            desc = read_wav_header(f)
    except (ConversionError, OSError) as e:
        print(f"[ERR] {e}")
        return 1

    print(f"[INFO] {args.file}")
    print(f"  Channels:      {desc.channels}")
    print(f"  Sample rate:   {desc.sample_rate} Hz")
    print(f"  Bit depth:     {desc.bits_per_sample}")
    print(f"  Data:          {desc.data_size} bytes @ {desc.data_offset}")
    print(f"  Total samples: {desc.total_samples}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
