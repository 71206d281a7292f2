#!/usr/bin/env python3
"""
Audio Trimmer CLI
Cut a time range out of any audio file and save it as 16-bit PCM WAV.

Usage:
    python main.py input.mp3 intro.wav --start 2 --end 5
    python main.py input.mp3 --start 2000 --end 5000 --auto-output
    python main.py input.mp3 --start 12.5 --name chorus --upload
"""

import argparse
import asyncio
import mimetypes
import os
import sys
import time
from typing import Optional

from tqdm import tqdm

from application.dto.trim_dto import AudioSource, EncodedArtifact
from application.ports.upload_port import IUploadClient
from infrastructure.web.upload_client import HttpUploadClient
from trimmer.core import STEPS, trim_and_upload, trim_audio_file
from trimmer.errors import TrimError
from trimmer.printer import OutputPrinter
from trimmer.utils import (
    DEFAULT_API_BASE,
    DEFAULT_UPLOAD_TIMEOUT,
    get_output_path,
    validate_input_file,
)


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="audio-trim",
        description="Trim an audio file to a time range and export it as WAV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py song.mp3 intro.wav --start 0 --end 12
  python main.py song.mp3 --start 2000 --end 5000 --auto-output
  python main.py song.mp3 --start 30 --name chorus --upload

Range notes:
  Values above 1000 are read as milliseconds (2000 = 2 s).
  A selection of 0.05 s or less keeps everything from START to the end.
        """,
    )

    parser.add_argument(
        "input",
        metavar="INPUT",
        help="Path to the input audio file (.mp3, .wav, .flac, .ogg, .aac, .m4a).",
    )
    parser.add_argument(
        "output",
        metavar="OUTPUT",
        nargs="?",
        default=None,
        help="Path for the WAV file. Omit if using --auto-output or --upload.",
    )

    range_group = parser.add_argument_group("Trim Range")
    range_group.add_argument(
        "--start",
        "-s",
        type=float,
        default=None,
        metavar="TIME",
        help="Start of the selection in seconds (default: beginning).",
    )
    range_group.add_argument(
        "--end",
        "-e",
        type=float,
        default=None,
        metavar="TIME",
        help="End of the selection in seconds (default: end of file).",
    )

    out_group = parser.add_argument_group("Output Options")
    out_group.add_argument(
        "--name",
        type=str,
        default=None,
        help="Name for the trimmed file; the extension is always replaced by .wav.",
    )
    out_group.add_argument(
        "--auto-output",
        action="store_true",
        help="Write next to INPUT using the resolved name (e.g., song.mp3 -> song.wav).",
    )
    out_group.add_argument(
        "--upload",
        action="store_true",
        help="Upload the trimmed WAV to the file service.",
    )
    out_group.add_argument(
        "--api-base",
        type=str,
        default=os.environ.get("UPLOAD_API_BASE", DEFAULT_API_BASE),
        metavar="URL",
        help="File service base URL (default: $UPLOAD_API_BASE or %(default)s).",
    )
    out_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress all output except errors.",
    )
    out_group.add_argument(
        "--no-color",
        "-n",
        action="store_true",
        help="Disable colored output (also auto-disabled when NO_COLOR env var is set).",
    )

    return parser


def _upload_timeout() -> float:
    try:
        return float(os.environ.get("UPLOAD_TIMEOUT_SECONDS", DEFAULT_UPLOAD_TIMEOUT))
    except ValueError:
        return DEFAULT_UPLOAD_TIMEOUT


def load_source(path: str) -> AudioSource:
    """Read an input file into an AudioSource."""
    validate_input_file(path)
    mime_type: Optional[str] = mimetypes.guess_type(path)[0]
    with open(path, "rb") as fh:
        content: bytes = fh.read()
    return AudioSource(content=content, mime_type=mime_type or "", name=os.path.basename(path))


async def run(
    args: argparse.Namespace,
    progress_callback=None,
    uploader: Optional[IUploadClient] = None,
) -> tuple[EncodedArtifact, Optional[str]]:
    """Trim, then write and/or upload. Returns the artifact and written path."""
    source: AudioSource = load_source(args.input)
    if args.upload:
        uploader = uploader or HttpUploadClient(args.api_base, timeout=_upload_timeout())
        artifact, _ = await trim_and_upload(
            source,
            args.start,
            args.end,
            uploader,
            args.name,
            progress_callback=progress_callback,
        )
    else:
        artifact = await trim_audio_file(
            source,
            args.start,
            args.end,
            args.name,
            progress_callback=progress_callback,
        )

    output_path: Optional[str] = None
    if args.output is not None:
        output_path = args.output
    elif args.auto_output:
        output_path = get_output_path(args.input, args.name)

    if output_path is not None:
        with open(output_path, "wb") as fh:
            fh.write(artifact.content)

    return artifact, output_path


def main() -> None:
    parser: argparse.ArgumentParser = build_parser()
    args: argparse.Namespace = parser.parse_args()

    printer: OutputPrinter = OutputPrinter(
        quiet=args.quiet,
        no_color=args.no_color,
    )

    if args.output is None and not args.auto_output and not args.upload:
        parser.error(
            "Provide an OUTPUT path, or use --auto-output / --upload."
        )
        return  # unreachable but satisfies type checkers

    if args.upload:
        printer.info(f"Uploading to {args.api_base}")

    start_time = time.time()
    try:
        if args.quiet:
            artifact, output_path = asyncio.run(run(args))
        else:
            with tqdm(total=len(STEPS), desc="Trimming", unit="step") as pbar:

                def cli_callback(step_idx: int, total: int, name: str) -> None:
                    pbar.set_description(name)
                    if step_idx > 0:
                        pbar.update(1)

                artifact, output_path = asyncio.run(run(args, cli_callback))
                pbar.update(pbar.total - pbar.n)

        elapsed: float = time.time() - start_time
        details: dict[str, str] = {
            "Size": f"{artifact.size / (1024 * 1024):.2f} MB",
            "Time": f"{elapsed:.1f}s",
        }
        if args.upload:
            details["Upload"] = args.api_base
        printer.success(title=output_path or artifact.name, details=details)

    except (TrimError, FileNotFoundError, ValueError) as exc:
        printer.error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        printer.warning("Trim cancelled.", hint="The trimmed file may not have been saved or uploaded.")
        sys.exit(130)


if __name__ == "__main__":
    main()
