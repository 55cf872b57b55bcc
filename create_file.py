# /// script
# requires-python = ">=3.8"
# dependencies = [
#     "genutility[rich]",
#     "rich",
#     "typing_extensions",
# ]
# ///
import errno
import logging
import os
import sys
from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser, Namespace
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import nullcontext
from itertools import repeat
from pathlib import Path
from typing import BinaryIO, Deque, Iterable, Iterator, NamedTuple, Optional, Sequence

from genutility.rand import randbytes
from genutility.rich import Progress
from rich.highlighter import NullHighlighter
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn
from rich.progress import Progress as RichProgress
from rich.progress import TextColumn, TimeElapsedColumn

from filesize import size_arg

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096


def chunk_size_for(random: bool, platform: str = os.name) -> int:
    """Random chunks are larger on posix so they can be generated by a thread pool
    while the previous chunk is written. On Windows small chunks are faster.
    """

    if random and platform != "nt":
        return CHUNK_SIZE * 256
    return CHUNK_SIZE


RANDOM_CHUNK_SIZE = chunk_size_for(True)
DEFAULT_WORKERS = 1 if os.name == "nt" else min(4, os.cpu_count() or 1)

# shared by all zero chunks of the default size, never mutated
_ZERO_CHUNK = bytes(CHUNK_SIZE)


class ChunkPlan(NamedTuple):
    total: int
    chunk_size: int
    full_chunks: int
    remainder: int

    @property
    def steps(self) -> int:
        """Number of buffers which will be emitted."""

        return self.full_chunks + (1 if self.remainder > 0 else 0)

    def sizes(self) -> Iterator[int]:
        yield from repeat(self.chunk_size, self.full_chunks)
        if self.remainder > 0:
            yield self.remainder


def plan_chunks(total: int, chunk_size: int) -> ChunkPlan:
    if total < 0:
        raise ValueError(f"total must not be negative: {total}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive: {chunk_size}")

    full_chunks, remainder = divmod(total, chunk_size)
    return ChunkPlan(total, chunk_size, full_chunks, remainder)


def zero_bytes(size: int) -> bytes:
    if size == CHUNK_SIZE:
        return _ZERO_CHUNK
    return bytes(size)


def random_bytes(size: int) -> bytes:
    return randbytes(size)


def _iter_random(sizes: Iterable[int], workers: int) -> Iterator[bytes]:
    if workers <= 1:
        for size in sizes:
            yield random_bytes(size)
        return

    # at most `workers` chunks are generated ahead of the one being written
    with ThreadPoolExecutor(max_workers=workers) as executor:
        pending: Deque[Future] = deque()
        for size in sizes:
            pending.append(executor.submit(random_bytes, size))
            if len(pending) > workers:
                yield pending.popleft().result()
        while pending:
            yield pending.popleft().result()


def iter_chunks(plan: ChunkPlan, random: bool = False, workers: int = 1) -> Iterator[bytes]:
    """Yields `plan.steps` buffers in file order. Their concatenation is exactly `plan.total` bytes long."""

    if random:
        yield from _iter_random(plan.sizes(), workers)
    else:
        block = zero_bytes(plan.chunk_size)
        yield from repeat(block, plan.full_chunks)
        if plan.remainder > 0:
            yield zero_bytes(plan.remainder)


def write_chunks(fw: BinaryIO, chunks: Iterable[bytes]) -> int:
    total = 0
    for chunk in chunks:
        written = fw.write(chunk)
        if written is not None and written != len(chunk):
            raise OSError(errno.EIO, f"Short write at {total}: {written}/{len(chunk)} bytes")
        total += len(chunk)
    return total


def create_file(
    path: Path,
    size: int,
    random: bool = False,
    chunk_size: Optional[int] = None,
    workers: int = 1,
    overwrite: bool = False,
    progress: Optional[Progress] = None,
) -> int:
    """Creates `path` with `size` zero or random bytes and returns the number of bytes written.
    Existing files are only replaced if `overwrite` is True. Write errors are not handled,
    a partially written file is left as is.
    """

    if chunk_size is None:
        chunk_size = chunk_size_for(random)

    plan = plan_chunks(size, chunk_size)
    logger.debug(
        "Chunk plan for %s: %d chunks of %d bytes, remainder %d", path, plan.full_chunks, plan.chunk_size, plan.remainder
    )

    chunks: Iterable[bytes] = iter_chunks(plan, random, workers)
    if progress is not None:
        chunks = progress.track(chunks, total=plan.steps, description=f"Writing {path.name}")

    logger.info("Creating %s with %d %s bytes", path, size, "random" if random else "zero")
    mode = "wb" if overwrite else "xb"
    with open(path, mode) as fw:
        written = write_chunks(fw, chunks)

    logger.info("Created %s with %d %s bytes", path, written, "random" if random else "zero")
    return written


def setup_logging(verbose: int) -> None:
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handler = RichHandler(log_time_format="%Y-%m-%d %H-%M-%S%Z", highlighter=NullHighlighter())
    FORMAT = "%(message)s"
    logging.basicConfig(level=level, format=FORMAT, handlers=[handler])


def get_parser() -> ArgumentParser:
    parser = ArgumentParser(
        description="Create a file of the given size filled with zeros or random data",
        formatter_class=ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-s",
        "--size",
        type=size_arg,
        required=True,
        help="Size of the output file, eg. `512`, `10kb` or `1.5 GB`. Units are powers of 1024.",
    )
    parser.add_argument(
        "-r",
        "--random",
        action="store_true",
        help="Fill the file with random data. Otherwise it will be all zeros.",
    )
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output file path")
    parser.add_argument(
        "--chunk-size",
        type=size_arg,
        default=None,
        help=f"Bytes per write call. Defaults to {CHUNK_SIZE} for zeros and {RANDOM_CHUNK_SIZE} for random data.",
    )
    parser.add_argument(
        "--workers",
        metavar="N",
        type=int,
        default=DEFAULT_WORKERS,
        help="Number of threads generating random data",
    )
    parser.add_argument("-f", "--force", action="store_true", help="Overwrite the output file if it exists")
    parser.add_argument("--no-progress", action="store_true", help="Don't show a progress bar")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def run(args: Namespace) -> int:
    if args.no_progress:
        progressctx = nullcontext()
    else:
        columns = [
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
        ]
        progressctx = RichProgress(*columns)

    with progressctx as p:
        progress = None if p is None else Progress(p)
        create_file(
            args.output,
            args.size,
            random=args.random,
            chunk_size=args.chunk_size,
            workers=args.workers,
            overwrite=args.force,
            progress=progress,
        )

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = get_parser()
    args = parser.parse_args(argv)

    if args.chunk_size is not None and args.chunk_size <= 0:
        parser.error("--chunk-size must be at least one byte")
    if args.workers < 1:
        parser.error("--workers must be at least 1")

    setup_logging(args.verbose)

    try:
        return run(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user. Exiting.")
        return 1
    except OSError:
        logger.exception("Creating `%s` failed. Exiting.", args.output)
        return 1


if __name__ == "__main__":
    sys.exit(main())
