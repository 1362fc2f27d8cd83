"""File format parsers for KrakenClip."""

import time
import logging
from pathlib import Path
from typing import List, Dict, Tuple, Set, Optional, Union, Iterable
from abc import ABC, abstractmethod

from krakenclip.core.hierarchy import build_hierarchy, build_report
from krakenclip.core.utils import COMMON_RANK_CODES, open_text
from krakenclip.models.errors import InputError
from krakenclip.models.taxonomic import TaxonNode, KrakenReport, ReportStats, ReadSelection

logger = logging.getLogger(__name__)

REPORT_FIELDS = 6
LOG_MIN_FIELDS = 3

class Parser(ABC):
    """Base parser class for different file formats."""

    @abstractmethod
    def parse(self, path: Path):
        """Parse file at the given path.

        Args:
            path: Path to file

        Returns:
            Parsed data
        """
        pass

class RankCodeCache:
    """Interns rank codes, the set of distinct codes in a report is small."""

    def __init__(self):
        self._codes: Dict[str, str] = {code: code for code in COMMON_RANK_CODES}

    def get(self, code: str) -> str:
        return self._codes.setdefault(code, code)

    def __len__(self) -> int:
        return len(self._codes)

def _parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0

def _parse_count(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        return 0
    return value if value >= 0 else 0

def parse_line(line: str, rank_cache: Optional[RankCodeCache] = None) -> Optional[TaxonNode]:
    """Tokenize one report line into a TaxonNode.

    Lines without the five tab separators are rejected. Numeric fields that
    do not parse are read as zero.

    Args:
        line: Report line, with or without its line terminator
        rank_cache: Cache used to intern rank codes

    Returns:
        TaxonNode, or None when the line has to be skipped
    """
    fields = line.rstrip('\r\n').split('\t', REPORT_FIELDS - 1)
    if len(fields) < REPORT_FIELDS:
        return None

    name_field = fields[5]
    depth = (len(name_field) - len(name_field.lstrip(' '))) // 2

    rank = fields[3].strip()
    if rank_cache is not None:
        rank = rank_cache.get(rank)

    return TaxonNode(
        depth=depth,
        percentage=_parse_float(fields[0]),
        clade_reads=_parse_count(fields[1]),
        direct_reads=_parse_count(fields[2]),
        rank=rank,
        taxid=_parse_count(fields[4]),
        name=name_field[depth * 2:].strip()
    )

class ReportParser(Parser):
    """Parser for hierarchical classification reports."""

    def parse(self, path: Path) -> Tuple[KrakenReport, ReportStats]:
        """Parse a report file and rebuild its tree.

        Args:
            path: Path to the report (plain or gzip-compressed)

        Returns:
            Tuple containing:
                - KrakenReport with tree and taxon index
                - ReportStats with line counts and timings

        Raises:
            InputError: If the report cannot be read
        """
        stats = ReportStats()
        rank_cache = RankCodeCache()
        nodes: List[TaxonNode] = []

        start = time.perf_counter()
        try:
            with open_text(path) as handle:
                for line_number, line in enumerate(handle, start=1):
                    stats.lines_read += 1
                    if not line.strip():
                        continue
                    node = parse_line(line, rank_cache)
                    if node is None:
                        stats.lines_skipped += 1
                        logger.warning(f"Skipping malformed report line {line_number} in {path}")
                        continue
                    nodes.append(node)
        except OSError as e:
            raise InputError(f"Error reading report {path}: {str(e)}")
        stats.parse_seconds = time.perf_counter() - start

        start = time.perf_counter()
        report = build_report(build_hierarchy(nodes))
        stats.build_seconds = time.perf_counter() - start

        logger.debug(f"Parsed {len(nodes)} taxa from {path} ({len(rank_cache)} rank codes)")
        return report, stats

def normalize_taxid(value: Union[str, int]) -> str:
    """Canonical string form of a taxid, as written in classification logs."""
    text = str(value).strip()
    if text.isdigit():
        return str(int(text))
    return text

def _log_taxid(field: str) -> str:
    """Taxid of a log line, also when written as 'Name (taxid N)'."""
    field = field.strip()
    if field.endswith(')') and '(taxid ' in field:
        field = field.rsplit('(taxid ', 1)[1][:-1].strip()
    return field

class ClassificationLogParser(Parser):
    """Streaming filter over per-read classification logs."""

    def __init__(self, taxids: Iterable[Union[str, int]], track_per_taxon: bool = False):
        """
        Args:
            taxids: Taxids whose reads are selected
            track_per_taxon: Whether to keep a taxid -> read IDs breakdown
        """
        self.taxids: Set[str] = {normalize_taxid(t) for t in taxids}
        self.track_per_taxon = track_per_taxon

    def parse(self, path: Path) -> ReadSelection:
        """Collect the read IDs classified to one of the target taxids.

        Args:
            path: Path to the classification log (plain or gzip-compressed)

        Returns:
            ReadSelection with the matched read IDs

        Raises:
            InputError: If the log cannot be read
        """
        selection = ReadSelection()
        if self.track_per_taxon:
            selection.per_taxon = {}

        try:
            with open_text(path) as handle:
                for line_number, line in enumerate(handle, start=1):
                    selection.lines_read += 1
                    fields = line.rstrip('\r\n').split('\t', LOG_MIN_FIELDS)
                    if len(fields) < LOG_MIN_FIELDS or not fields[1].strip():
                        selection.lines_skipped += 1
                        logger.debug(f"Skipping malformed log line {line_number} in {path}")
                        continue

                    taxid = _log_taxid(fields[2])
                    if taxid not in self.taxids:
                        continue

                    read_id = fields[1].strip()
                    selection.lines_matched += 1
                    selection.read_ids.add(read_id)
                    if selection.per_taxon is not None:
                        selection.per_taxon.setdefault(taxid, set()).add(read_id)
        except OSError as e:
            raise InputError(f"Error reading classification log {path}: {str(e)}")

        if selection.lines_skipped:
            logger.warning(f"Skipped {selection.lines_skipped} malformed lines in {path}")
        logger.info(f"Selected {len(selection.read_ids)} reads from {selection.lines_read} log lines")
        return selection

# Factory function to get appropriate parser
def get_parser(file_type: str, **kwargs) -> Parser:
    """Get appropriate parser for file type.

    Args:
        file_type: Type of file to parse ('report' or 'log')
        kwargs: Constructor arguments for the parser

    Returns:
        Parser object

    Raises:
        InputError: If the file type is unknown
    """
    parsers = {
        'report': ReportParser,
        'log': ClassificationLogParser,
    }
    if file_type not in parsers:
        raise InputError(f"Unknown file type: {file_type}")
    return parsers[file_type](**kwargs)

def parse_kraken2_report(report_path: Union[str, Path]) -> Tuple[KrakenReport, ReportStats]:
    """Parse a report file into a KrakenReport.

    Wrapper for ReportParser.
    """
    return ReportParser().parse(Path(report_path))

def filter_classification_log(
    log_path: Union[str, Path],
    taxids: Iterable[Union[str, int]],
    track_per_taxon: bool = False
) -> ReadSelection:
    """Select read IDs from a classification log.

    Wrapper for ClassificationLogParser.
    """
    return ClassificationLogParser(taxids, track_per_taxon).parse(Path(log_path))
