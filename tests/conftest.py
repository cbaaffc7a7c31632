"""Shared pytest fixtures: synthetic WAV files built chunk by chunk."""

import struct

import numpy as np
import pytest


def fmt_payload(channels=1, sample_rate=32000, bits=16, format_tag=1):
    block_align = channels * bits // 8
    return struct.pack("<HHIIHH", format_tag, channels, sample_rate,
                       sample_rate * block_align, block_align, bits)


def chunk(cid, payload):
    data = cid + struct.pack("<I", len(payload)) + payload
    if len(payload) % 2 == 1:
        data += b"\x00"
    return data


def riff(*chunks):
    body = b"WAVE" + b"".join(chunks)
    return b"RIFF" + struct.pack("<I", len(body)) + body


def pcm_frames(samples, channels=1):
    """Interleaved int16 frames where channel c of frame i holds i * 16 + c."""
    frame = np.arange(samples, dtype=np.int32)[:, None] * 16 + np.arange(channels)
    return (frame % 32768).astype("<i2")


@pytest.fixture
def make_wav(tmp_path):
    """
    Factory writing a WAV file into tmp_path.

    Extra chunks in `before` / `after` surround fmt and data; `data_first`
    puts the data chunk ahead of fmt.
    """
    def _make(samples=100, channels=1, sample_rate=32000, bits=16, format_tag=1,
              name="input.wav", before=(), after=(), data_first=False, frames=None):
        if frames is None:
            frames = pcm_frames(samples, channels)
        fmt = chunk(b"fmt ", fmt_payload(channels, sample_rate, bits, format_tag))
        data = chunk(b"data", frames.tobytes())
        body = [data, fmt] if data_first else [fmt, data]
        path = tmp_path / name
        path.write_bytes(riff(*before, *body, *after))
        return path
    return _make
