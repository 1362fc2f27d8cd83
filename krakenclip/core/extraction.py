"""Streaming extraction of FASTA/FASTQ records by read ID."""

import gzip
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Set, Tuple, Union, Iterable, Iterator, IO, BinaryIO

from krakenclip.core.utils import FLUSH_THRESHOLD, check_input_file, open_binary
from krakenclip.models.errors import InputError, ExtractionError
from krakenclip.models.taxonomic import FileExtractionStats, ExtractionResult

logger = logging.getLogger(__name__)

FASTA_MARKER = b'>'
FASTQ_MARKER = b'@'
FASTQ_LINES = 4

def record_id(header: bytes) -> bytes:
    """Header token up to the first whitespace, marker stripped."""
    parts = header[1:].split(None, 1)
    return parts[0] if parts else b''

def iter_records(handle: BinaryIO) -> Iterator[Tuple[bytes, bytearray, bool]]:
    """
    Yield the records of a FASTA/FASTQ stream, byte for byte.

    The format is decided per record by its header marker. A FASTA record
    runs until the next '>' line; a FASTQ record is exactly four lines.
    Lines outside any record are skipped.

    Args:
        handle: Binary file handle

    Yields:
        Tuple containing:
            - record ID
            - the raw record bytes, line terminators included
            - False when the stream ended inside a FASTQ record
    """
    line = handle.readline()
    while line:
        marker = line[:1]
        if marker == FASTA_MARKER:
            rid = record_id(line)
            record = bytearray(line)
            line = handle.readline()
            while line and not line.startswith(FASTA_MARKER):
                record += line
                line = handle.readline()
            yield rid, record, True
        elif marker == FASTQ_MARKER:
            rid = record_id(line)
            record = bytearray(line)
            for _ in range(FASTQ_LINES - 1):
                next_line = handle.readline()
                if not next_line:
                    yield rid, record, False
                    return
                record += next_line
            yield rid, record, True
            line = handle.readline()
        else:
            line = handle.readline()

class SequenceExtractor:
    """Copies the records of sequence files whose IDs are (not) selected."""

    def __init__(
        self,
        read_ids: Iterable[str],
        exclude: bool = False,
        threads: int = 1,
        flush_threshold: int = FLUSH_THRESHOLD,
        collect_ids: bool = False
    ):
        """Initialize the extractor.

        Args:
            read_ids: Read IDs to select
            exclude: Write the records whose ID is not selected instead
            threads: Maximum number of files processed at once
            flush_threshold: Bytes buffered per file before writing out
            collect_ids: Keep the IDs of written records in the result
        """
        self.read_ids: Set[bytes] = {read_id.encode('utf-8') for read_id in read_ids}
        self.exclude = exclude
        self.threads = max(1, threads)
        self.flush_threshold = flush_threshold
        self.collect_ids = collect_ids

    def _keep(self, rid: bytes) -> bool:
        return (rid in self.read_ids) != self.exclude

    def _process_file(self, path: Path, sink: IO[bytes], lock: threading.Lock) -> FileExtractionStats:
        stats = FileExtractionStats(path=str(path))
        if self.collect_ids:
            stats.written_ids = set()
        buffer = bytearray()

        def flush() -> None:
            if buffer:
                with lock:
                    sink.write(buffer)
                buffer.clear()

        with open_binary(path) as handle:
            for rid, record, complete in iter_records(handle):
                stats.records_seen += 1
                if self._keep(rid):
                    # Only the last record of a file can lack its newline
                    if not record.endswith(b'\n'):
                        record += b'\n'
                    buffer += record
                    stats.records_written += 1
                    stats.bytes_written += len(record)
                    if stats.written_ids is not None:
                        stats.written_ids.add(rid.decode('utf-8', errors='replace'))
                    if len(buffer) >= self.flush_threshold:
                        flush()
                if not complete:
                    stats.truncated = True
                    logger.warning(f"Truncated FASTQ record '{rid.decode('utf-8', errors='replace')}' at end of {path}")
        flush()

        logger.info(f"{path}: wrote {stats.records_written} of {stats.records_seen} records")
        return stats

    def extract(self, input_paths: Iterable[Union[str, Path]], output: Union[str, Path, BinaryIO]) -> ExtractionResult:
        """
        Extract records from every input file into one output.

        Args:
            input_paths: FASTA/FASTQ files (plain or gzip-compressed)
            output: Output path (gzip-compressed when ending in .gz) or binary handle

        Returns:
            ExtractionResult with per-file counters

        Raises:
            InputError: If an input file is missing
            ExtractionError: If reading or writing fails
        """
        paths = [check_input_file(p) for p in input_paths]
        if not paths:
            raise InputError("No sequence files given")

        if isinstance(output, (str, Path)):
            try:
                if str(output).endswith('.gz'):
                    sink = gzip.open(output, 'wb')
                else:
                    sink = open(output, 'wb')
            except OSError as e:
                raise ExtractionError(f"Cannot open output {output}: {str(e)}")
            close_sink = True
        else:
            sink = output
            close_sink = False

        lock = threading.Lock()
        result = ExtractionResult()
        try:
            workers = min(self.threads, len(paths))
            if workers == 1:
                for path in paths:
                    result.files.append(self._process_file(path, sink, lock))
            else:
                logger.debug(f"Processing {len(paths)} files with {workers} threads")
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = [executor.submit(self._process_file, path, sink, lock) for path in paths]
                    result.files.extend(future.result() for future in futures)
        except OSError as e:
            raise ExtractionError(f"Error extracting sequences: {str(e)}")
        finally:
            if close_sink:
                sink.close()
            else:
                sink.flush()

        logger.info(f"Extracted {result.records_written} of {result.records_seen} records")
        return result

def extract_sequences(
    input_paths: List[Union[str, Path]],
    read_ids: Iterable[str],
    output: Union[str, Path, BinaryIO],
    exclude: bool = False,
    threads: int = 1,
    collect_ids: bool = False
) -> ExtractionResult:
    """Extract selected records from sequence files.

    Wrapper for SequenceExtractor.
    """
    extractor = SequenceExtractor(read_ids, exclude=exclude, threads=threads, collect_ids=collect_ids)
    return extractor.extract(input_paths, output)
