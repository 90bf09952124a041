"""
File helpers: transparent gzip handling, read files and contig output.
"""

import gzip
import logging
import pathlib
import re
from typing import Iterable, Iterator, TextIO, Tuple, Union

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqIO.QualityIO import FastqGeneralIterator
from Bio.SeqRecord import SeqRecord

from .exceptions import InvalidInputFileError, OutputWriteError

logger = logging.getLogger(__name__)


def open_file_transparently(
    file_path: Union[str, pathlib.Path], mode: str = "rt"
) -> TextIO:
    """Opens a file, transparently handling gzip compression.

    Compression is inferred from a ``.gz`` suffix. Defaults to text read mode.

    Args:
        file_path: Path to the file.
        mode: File open mode (e.g., "rt", "wt").

    Returns:
        A text file object.

    Raises:
        FileNotFoundError: If a file opened for reading does not exist.
        IOError: If an I/O error occurs during opening.
    """
    file_path = pathlib.Path(file_path)

    if "r" in mode and not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    try:
        if file_path.name.endswith(".gz"):
            return gzip.open(file_path, mode=mode)  # type: ignore[return-value]
        return open(file_path, mode=mode)
    except (IOError, OSError) as e:
        raise IOError(f"Error opening file {file_path} with mode '{mode}': {e}") from e


def detect_file_format(file_path: pathlib.Path) -> str:
    """Detects sequence file format (FASTA or FASTQ) based on the first line."""
    with open_file_transparently(file_path) as f:
        first_line = f.readline().strip()
    if first_line.startswith(">"):
        return "fasta"
    elif first_line.startswith("@"):
        return "fastq"
    raise InvalidInputFileError(f"Unknown file format for file: {file_path}")


def parse_read_file(file_path: Union[str, pathlib.Path]) -> Iterator[Tuple[str, str]]:
    """
    Yield (read name, sequence) pairs from a FASTA or FASTQ file, possibly gzipped.

    The read name is the first word of the header. Sequences are passed on
    unvalidated; the assembler decides what to skip.
    """
    file_path = pathlib.Path(file_path)
    file_format = detect_file_format(file_path)
    logger.info(f"Reading {file_format.upper()} reads from {file_path}")

    with open_file_transparently(file_path) as handle:
        if file_format == "fasta":
            for record in SeqIO.parse(handle, "fasta"):
                yield record.id, str(record.seq)
        else:
            for title, sequence, _quality in FastqGeneralIterator(handle):
                yield title.split(None, 1)[0] if title else "", sequence


def write_contigs(contigs: Iterable, handle: TextIO) -> int:
    """
    Write contigs as two-line FASTA (header line, then the unwrapped sequence).

    Args:
        contigs: Objects with ``header`` (including the leading ``>``) and ``sequence``.
        handle: Open text handle.

    Returns:
        Number of records written.
    """
    records = []
    for contig in contigs:
        title = contig.header.strip().lstrip(">")
        record_id = title.split(None, 1)[0]
        records.append(SeqRecord(Seq(contig.sequence.strip()), id=record_id, description=title))
    try:
        return SeqIO.write(records, handle, "fasta-2line")
    except (IOError, OSError) as e:
        raise OutputWriteError(f"Error writing contigs: {e}") from e


def get_sample_name(file_path: pathlib.Path) -> str:
    """
    Sample name derived from a file name, safe for use in output paths.

    Strips compression and sequence suffixes and replaces anything other than
    letters, digits, dot, dash and underscore.

    Raises:
        ValueError: If nothing usable remains.
    """
    name = pathlib.Path(file_path).name
    for suffix in (".gz", ".fastq", ".fq", ".fasta", ".fa", ".fna", ".tsv", ".txt"):
        if name.lower().endswith(suffix):
            name = name[: -len(suffix)]
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    if not name:
        raise ValueError(f"Could not derive a sample name from {file_path}")
    return name
