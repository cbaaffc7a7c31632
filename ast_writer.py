"""
ast_writer.py

Writes the Nintendo AST streaming container from 16-bit PCM.

Layout:
  - 64-byte big-endian "STRM" header
  - "BLCK" blocks of up to 10080 bytes per channel. Inside a block the audio
    is grouped by channel (all of channel 0, then all of channel 1, ...), each
    sample big-endian. The last block is zero padded per channel to a 32-byte
    boundary.

Details of the format:
  - https://wiki.tockdom.com/wiki/AST_(File_Format)
  - https://wiibrew.org/wiki/AST_file
"""

import logging
import os
import struct
from dataclasses import dataclass

import numpy as np

from wav_reader import ConversionError

log = logging.getLogger(__name__)

HEADER_SIZE = 0x40
BLOCK_HEADER_SIZE = 0x20
BLOCK_SIZE = 10080
ALIGNMENT = 0x20
PCM_FORMAT = 0x0001
BIT_DEPTH = 16
VOLUME = 127
LOOP_ON = 0xFFFF
LOOP_OFF = 0x0000
MAX_STREAM_SIZE = 0xFFFFFFFF

# magic, stream size, format, bit depth, channels, loop flag, sample rate,
# total samples, loop start, loop end, first block size, reserved, volume
HEADER_FMT = ">4sIHHHHIIIIIIB3x20x"
BLOCK_HEADER_FMT = ">4sI24x"


class EmptyAudio(ConversionError):
    pass


class TruncatedSource(ConversionError):
    pass


class StreamTooLarge(ConversionError):
    pass


@dataclass(frozen=True)
class BlockLayout:
    block_count: int
    final_block_size: int   # per channel, before padding
    padding: int            # per channel, last block only
    block_size: int = BLOCK_SIZE

    def block_bytes(self, index):
        """Unpadded bytes per channel held by block `index`."""
        if index == self.block_count - 1:
            return self.final_block_size
        return self.block_size

    def stream_size(self, channels):
        """Everything after the 64-byte header."""
        audio = ((self.block_count - 1) * self.block_size + self.final_block_size) * channels
        return audio + BLOCK_HEADER_SIZE * self.block_count + self.padding * channels


# --------------------------
# Block segmenter
# --------------------------
def segment_blocks(samples, channels=1, block_size=BLOCK_SIZE):
    """
    Split `samples` (per channel) into AST blocks.

    Returns a BlockLayout. Raises EmptyAudio when there is nothing to write
    and StreamTooLarge when the stream size does not fit the 32-bit header
    field.
    """
    per_channel = samples * 2
    block_count, final = divmod(per_channel, block_size)
    if final:
        block_count += 1
    if block_count == 0:
        raise EmptyAudio("Source WAV contains no audio data!")
    if final == 0:
        final = block_size

    padding = ALIGNMENT - (final % ALIGNMENT)
    if padding == ALIGNMENT:
        padding = 0

    layout = BlockLayout(block_count=block_count, final_block_size=final,
                         padding=padding, block_size=block_size)
    if layout.stream_size(channels) > MAX_STREAM_SIZE:
        raise StreamTooLarge(
            f"{samples} samples x {channels} channel(s) do not fit in an AST stream "
            f"({layout.stream_size(channels)} bytes, limit {MAX_STREAM_SIZE}).")
    return layout


# --------------------------
# Header
# --------------------------
def pack_header(plan, layout):
    """Return the 64-byte STRM header for `plan` laid out as `layout`."""
    if layout.block_count == 1:
        first_block = layout.final_block_size + layout.padding
    else:
        first_block = layout.block_size

    return struct.pack(
        HEADER_FMT,
        b"STRM",
        layout.stream_size(plan.channels),
        PCM_FORMAT,
        BIT_DEPTH,
        plan.channels,
        LOOP_ON if plan.looped else LOOP_OFF,
        plan.sample_rate,
        plan.end_sample,
        plan.loop_start,
        plan.end_sample,     # loop end is always the end of the stream
        first_block,
        0,
        VOLUME,
    )


def write_header(dst, plan, layout):
    dst.write(pack_header(plan, layout))


# --------------------------
# Blocks
# --------------------------
def _channel_slices(raw, channels):
    """
    De-interleave little-endian int16 frames and byte-swap them.

    Returns one big-endian bytes object per channel.
    """
    frames = np.frombuffer(raw, dtype="<i2").reshape(-1, channels)
    return [frames[:, c].astype(">i2").tobytes() for c in range(channels)]


def write_blocks(src, dst, desc, plan, layout):
    """
    Stream the selected PCM from `src` into `dst` as AST blocks.

    `src` is repositioned at the start of the WAV data chunk payload. Returns
    the number of audio bytes written (padding excluded).
    """
    channels = plan.channels
    pad = bytes(layout.padding)
    written = 0

    src.seek(desc.data_offset)
    for index in range(layout.block_count):
        size = layout.block_bytes(index)
        last = index == layout.block_count - 1

        # Block size field is per channel, padding included
        dst.write(struct.pack(BLOCK_HEADER_FMT, b"BLCK", size + layout.padding if last else size))

        wanted = size * channels
        raw = src.read(wanted)
        if len(raw) != wanted:
            raise TruncatedSource(
                f"Source WAV ended early: block {index} needed {wanted} bytes, got {len(raw)}.")

        for data in _channel_slices(raw, channels):
            dst.write(data)
            if last:
                dst.write(pad)
        written += wanted

    return written


def write_ast(src, dst_path, desc, plan):
    """
    Write a complete AST file for `plan` to `dst_path`.

    A partially written file is removed if anything fails after it was
    created. Returns the BlockLayout used.
    """
    layout = segment_blocks(plan.end_sample, plan.channels)
    try:
        with open(dst_path, "wb") as dst:
            write_header(dst, plan, layout)
            written = write_blocks(src, dst, desc, plan, layout)
    except BaseException:
        if os.path.exists(dst_path):
            os.remove(dst_path)
        raise

    log.debug("Wrote %d audio bytes in %d block(s) to %s", written, layout.block_count, dst_path)
    return layout
