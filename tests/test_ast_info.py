import io

import pytest

from ast_create import ConversionPlan
from ast_info import InvalidAstFile, main, read_ast_info
from ast_writer import BLOCK_SIZE, write_ast
from tests.conftest import pcm_frames
from wav_reader import AudioDescriptor


@pytest.fixture
def ast_file(tmp_path):
    frames = pcm_frames(12000, channels=2)
    desc = AudioDescriptor(format_tag=1, channels=2, sample_rate=32000, bits_per_sample=16,
                           data_size=frames.nbytes, data_offset=0)
    plan = ConversionPlan(sample_rate=32000, looped=True, loop_start=777, end_sample=12000, channels=2)
    path = tmp_path / "track.ast"
    write_ast(io.BytesIO(frames.tobytes()), str(path), desc, plan)
    return path


def test_read_ast_info(ast_file):
    info = read_ast_info(str(ast_file))
    # 24000 bytes per channel: 10080 + 10080 + 3840
    assert info["block_count"] == 3
    assert info["last_block_size"] == 3840
    assert info["first_block_size"] == BLOCK_SIZE
    assert info["channel_count"] == 2
    assert info["bit_depth"] == 16
    assert info["audio_format"] == 1
    assert info["loop_start"] == 777
    assert info["loop_end"] == info["sample_count"] == 12000
    assert info["volume"] == 127


def test_bad_magic(ast_file):
    data = bytearray(ast_file.read_bytes())
    data[0:4] = b"RIFF"
    ast_file.write_bytes(bytes(data))
    with pytest.raises(InvalidAstFile, match="Bad magic"):
        read_ast_info(str(ast_file))


def test_size_mismatch(ast_file):
    ast_file.write_bytes(ast_file.read_bytes() + b"\x00")
    with pytest.raises(InvalidAstFile):
        read_ast_info(str(ast_file))


def test_bad_block_magic(ast_file):
    data = bytearray(ast_file.read_bytes())
    data[0x40:0x44] = b"BLOK"
    ast_file.write_bytes(bytes(data))
    with pytest.raises(InvalidAstFile, match="block magic"):
        read_ast_info(str(ast_file))


def test_main(ast_file, capsys):
    assert main([str(ast_file)]) == 0
    out = capsys.readouterr().out
    assert "Looped:" in out and "0xFFFF" in out
    assert "Block Count:" in out


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.ast")]) == 1
    assert "[ERR]" in capsys.readouterr().out
