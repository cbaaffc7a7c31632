#!/usr/bin/env python3
"""
ast_create.py

Convert a 16-bit PCM WAV file into a lossless Nintendo AST stream, as used by
Super Mario Galaxy and Mario Kart: Double Dash!! (the output also plays in the
lossy AST readers of Twilight Princess).

Options:
- -o: output file (default: input with .wav/.wave replaced by .ast)
- -s / -t: loop start, in samples or microseconds (default: 0)
- -n: disable looping
- -e / -f: end of stream, in samples or microseconds (default: whole file)
- -r: sample rate written to the header. Changes playback speed, the audio
  itself is not resampled and -t/-f are still measured at the source rate.
- -q / -v: quieter / chattier console output

Examples:
  python ast_create.py inputfile.wav -o outputfile.ast -s 158462 -e 7485124
  python ast_create.py "use quotations if filename contains spaces.wav" -n -f 95000000
  python ast_create.py track.wav -t 30000000     # loop at 30 s (960000 samples at 32000 Hz)
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass

from ast_writer import write_ast, segment_blocks
from wav_reader import ConversionError, read_wav_header

log = logging.getLogger(__name__)

MAX_UINT32 = 0xFFFFFFFF
MAX_UINT64 = 0xFFFFFFFFFFFFFFFF
ILLEGAL_OUTPUT_CHARS = '*?"<>|'


class ZeroSampleCount(ConversionError):
    pass


class EffectivelyZeroEndpoint(ZeroSampleCount):
    pass


class ZeroSampleRate(ConversionError):
    pass


class InvalidInputName(ConversionError):
    pass


class InvalidOutputName(ConversionError):
    pass


@dataclass(frozen=True)
class ConversionPlan:
    """What ends up in the AST: rate, loop and how many samples to keep."""
    sample_rate: int
    looped: bool
    loop_start: int
    end_sample: int
    channels: int

    @property
    def audio_size(self):
        return self.end_sample * 2 * self.channels


# --------------------------
# Loop / range resolution
# --------------------------
def microseconds_to_samples(us, sample_rate):
    """Round half up, exactly: 30000000 us at 32000 Hz -> 960000 samples."""
    return (us * sample_rate + 500000) // 1000000


def resolve_plan(desc, loop_start=None, loop_start_us=None, no_loop=False,
                 end_sample=None, end_us=None, sample_rate=None):
    """
    Turn user overrides into a ConversionPlan for the WAV described by `desc`.

    Microsecond values are converted at the source sample rate. The end of the
    stream is clamped to the samples actually present in the source and a loop
    start that does not fall before it is reset to 0.
    """
    if loop_start is not None and loop_start_us is not None:
        raise ValueError("loop start given both in samples and in microseconds")
    if end_sample is not None and end_us is not None:
        raise ValueError("end point given both in samples and in microseconds")

    total = desc.total_samples

    if end_us is not None:
        if end_us == 0:
            raise ZeroSampleCount("Ending point of AST cannot be set to zero microseconds!")
        end_sample = microseconds_to_samples(end_us, desc.sample_rate)
        if end_sample == 0:
            raise EffectivelyZeroEndpoint(
                "End point of AST is effectively zero! "
                "Please enter a larger value of microseconds (not milliseconds).")
    elif end_sample is not None and end_sample == 0:
        raise ZeroSampleCount("Total number of samples cannot be zero!")

    if end_sample is None or end_sample > total:
        end_sample = total

    if loop_start_us is not None:
        loop_start = microseconds_to_samples(loop_start_us, desc.sample_rate)
    if loop_start is None or no_loop:
        loop_start = 0
    if loop_start >= end_sample:
        log.debug("Loop start %d is not before end %d, using 0", loop_start, end_sample)
        loop_start = 0

    rate = sample_rate or desc.sample_rate
    if rate == 0:
        raise ZeroSampleRate("Source file has a sample rate of 0 Hz!")

    return ConversionPlan(
        sample_rate=rate,
        looped=not no_loop,
        loop_start=loop_start,
        end_sample=end_sample,
        channels=desc.channels,
    )


# --------------------------
# Output naming
# --------------------------
def default_output_path(input_path):
    """Swap a .wav/.wave extension for .ast."""
    if "*" in input_path:
        raise InvalidInputName(
            "Program is only capable of opening a single input file at a time. "
            "Please enter an exact file name (avoid using '*').")
    stem, ext = os.path.splitext(input_path)
    if ext.lower() not in (".wav", ".wave"):
        if ext:
            raise InvalidInputName("Source file must be a WAV file!")
        raise InvalidInputName(
            "Source file contains no extension! The filename should be followed with "
            "\".wav\", assuming the source is indeed a WAV file.")
    return stem + ".ast"


def is_legal_output_name(path):
    if any(c in path for c in ILLEGAL_OUTPUT_CHARS):
        return False
    # A drive colon is only valid before the first directory separator
    slash = max(path.rfind("/"), path.rfind("\\"))
    return path.rfind(":") <= slash


def resolve_output_path(input_path, requested=None):
    """
    Pick the output path: the requested one when it is legal, else the
    default derived from the input. Always ends in .ast.
    """
    path = default_output_path(input_path)
    if requested is not None:
        if is_legal_output_name(requested):
            path = requested
        else:
            log.warning('Output filename "%s" contains illegal characters. '
                        'Output argument will be ignored.', requested)

    if path.lower() == ".ast":
        raise InvalidOutputName("Output filename can not be restricted exclusively to .ast extension!")
    if not path.lower().endswith(".ast"):
        path += ".ast"
    return path


# --------------------------
# Conversion
# --------------------------
def convert(input_path, output=None, quiet=False, **overrides):
    """
    Convert `input_path` to AST. `overrides` are passed to resolve_plan.

    Returns the path written.
    """
    out_path = resolve_output_path(input_path, output)

    with open(input_path, "rb") as src:
        desc = read_wav_header(src)
        plan = resolve_plan(desc, **overrides)
        layout = segment_blocks(plan.end_sample, plan.channels)

        if not quiet:
            mode = {1: " (mono)", 2: " (stereo)"}.get(plan.channels, "")
            print("[INFO] File opened successfully!\n")
            print(f"   AST file size: {layout.stream_size(plan.channels) + 64} bytes")
            print(f"   Sample rate: {plan.sample_rate} Hz")
            print(f"   Is looped: {'true' if plan.looped else 'false'}")
            if plan.looped:
                print(f"   Starting loop point: {plan.loop_start} samples")
            print(f"   End of stream: {plan.end_sample} samples")
            print(f"   Number of channels: {plan.channels}{mode}")
            print(f"\n[INFO] Writing {out_path}...")

        out_dir = os.path.dirname(out_path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        write_ast(src, out_path, desc, plan)

    if not quiet:
        print("[INFO] ...DONE!")
    return out_path


# --------------------------
# CLI
# --------------------------
class _Parser(argparse.ArgumentParser):
    """Usage errors print the help text and exit with status 1."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(1, f"\n[ERR] {message}\n")


def _uint(limit):
    def parse(value):
        n = int(value)
        if not 0 <= n <= limit:
            raise argparse.ArgumentTypeError(f"{value} is out of range (0-{limit})")
        return n
    parse.__name__ = "unsigned integer"
    return parse


def build_parser():
    uint32 = _uint(MAX_UINT32)
    uint64 = _uint(MAX_UINT64)

    parser = _Parser(description="Convert a 16-bit PCM WAV file into a Nintendo AST stream.",
                     add_help=False)
    parser.add_argument("input", nargs="?", help="Source WAV file (.wav or .wave).")
    parser.add_argument("-o", "--output", help="Output file (default: same as input with an .ast extension).")
    start = parser.add_mutually_exclusive_group()
    start.add_argument("-s", "--loop-start", type=uint32, help="Loop start sample (default: 0).")
    start.add_argument("-t", "--loop-start-us", type=uint64,
                       help="Loop start in microseconds (ex: 30000000 is 30 seconds, or 960000 samples at 32000 Hz).")
    parser.add_argument("-n", "--no-loop", action="store_true", help="Disable looping.")
    end = parser.add_mutually_exclusive_group()
    end.add_argument("-e", "--end", type=uint32,
                     help="Loop end sample / total samples (default: number of samples in source file).")
    end.add_argument("-f", "--end-us", type=uint64, help="Loop end / total time in microseconds.")
    parser.add_argument("-r", "--sample-rate", type=uint32,
                        help="Sample rate written to the AST (default: same as source). "
                             "Changes the speed of the audio rather than its size.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress console output.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose console output.")
    parser.add_argument("-h", "--help", action="store_true", help="Show this help text.")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(format="[%(levelname)s] %(message)s", level=level)

    if args.input is None:
        parser.print_help()
        return 1
    if args.help:
        parser.print_help()

    try:
        convert(
            args.input,
            output=args.output,
            quiet=args.quiet,
            loop_start=args.loop_start,
            loop_start_us=args.loop_start_us,
            no_loop=args.no_loop,
            end_sample=args.end,
            end_us=args.end_us,
            sample_rate=args.sample_rate,
        )
    except FileNotFoundError as e:
        if e.filename == args.input:
            print(f"[ERR] Cannot find/open input file: {args.input}")
        else:
            print(f"[ERR] {e}")
        return 1
    except (ConversionError, OSError) as e:
        print(f"[ERR] {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
