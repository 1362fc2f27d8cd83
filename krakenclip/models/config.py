"""Configuration management for KrakenClip."""

import os
from pathlib import Path
from typing import List, Optional, Any

from krakenclip.models.errors import KrakenClipError

class ConfigError(KrakenClipError):
    """Raised when there's an issue with configuration."""
    pass

def split_taxids(value: Optional[str]) -> List[str]:
    """Split a comma-separated taxid list, dropping empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]

class KrakenClipConfig:
    """Centralized configuration for KrakenClip."""

    def __init__(self, args: Optional[Any] = None):
        """
        Initialize configuration from args and environment.

        Args:
            args: Arguments from argparse

        Raises:
            ConfigError: If required configuration is missing or invalid
        """
        # Command-specific configuration - get this first
        self.command = getattr(args, 'command', None)

        # Common configuration
        self.verbose = getattr(args, 'verbose', False)

        # Analyze command configuration
        if self.command == 'analyze':
            self.report = Path(getattr(args, 'report', ''))
            self.json_output = self._optional_path(getattr(args, 'json', None))
            self.biom_output = self._optional_path(getattr(args, 'biom', None))
            self.tax_id = getattr(args, 'tax_id', None)
            self.search = getattr(args, 'search', None)
            self.filter = getattr(args, 'filter', None)
            self.info = getattr(args, 'info', False)

        # Extract command configuration
        elif self.command == 'extract':
            self.sequence_files = [Path(f) for f in getattr(args, 'sequence', [])]
            self.log = Path(getattr(args, 'log', ''))
            self.output = Path(getattr(args, 'output', ''))
            self.report = self._optional_path(getattr(args, 'report', None))
            self.taxids = split_taxids(getattr(args, 'taxids', None))
            self.include_children = getattr(args, 'include_children', False)
            self.include_parents = getattr(args, 'include_parents', False)
            self.exclude = getattr(args, 'exclude', False)
            self.stats_output = self._optional_path(getattr(args, 'stats_output', None))

            threads = getattr(args, 'threads', None)
            if threads is None:
                threads = os.environ.get("KRAKENCLIP_THREADS", 1)
            try:
                self.threads = int(threads)
            except ValueError:
                raise ConfigError(f"Invalid thread count: {threads}")
            if self.threads < 1:
                raise ConfigError(f"Thread count must be at least 1, got {self.threads}")

            if not self.taxids:
                raise ConfigError("No taxids given. Use '--taxids' with a comma-separated list.")
            if (self.include_children or self.include_parents) and self.report is None:
                raise ConfigError("'--include-children' and '--include-parents' require '--report'.")

        # Abundance-matrix command configuration
        elif self.command == 'abundance-matrix':
            self.reports = [Path(f) for f in getattr(args, 'reports', [])]
            self.output = Path(getattr(args, 'output', ''))
            self.rank = getattr(args, 'rank', 'S')
            self.min_abundance = getattr(args, 'min_abundance', 0.0)
            self.normalize = not getattr(args, 'raw_counts', False)
            self.include_unclassified = getattr(args, 'include_unclassified', False)
            self.output_format = getattr(args, 'format', 'tsv')

        # Generate-test-data command configuration
        elif self.command == 'generate-test-data':
            self.output = Path(getattr(args, 'output', ''))
            self.num_lines = getattr(args, 'lines', 100000)
            self.data_type = getattr(args, 'type', 'balanced')
            self.seed = getattr(args, 'seed', None)
            self.num_reads = getattr(args, 'reads', 0)
            self.log_output = self._optional_path(getattr(args, 'log_output', None))
            self.sequences_output = self._optional_path(getattr(args, 'sequences_output', None))
            self.sequence_format = getattr(args, 'sequence_format', 'fastq')
            self.read_length = getattr(args, 'read_length', 150)

            if self.num_reads and (self.log_output is None or self.sequences_output is None):
                raise ConfigError("'--reads' requires both '--log-output' and '--sequences-output'.")

    @staticmethod
    def _optional_path(value: Optional[str]) -> Optional[Path]:
        return Path(value) if value else None
