#!/usr/bin/env python3
"""Command-line interface for KrakenClip."""

import sys
import argparse
import logging
from typing import List, Optional

from krakenclip import __version__
from krakenclip.core.utils import setup_logging, TAXON_LEVELS
from krakenclip.core.synthetic import DATA_TYPES
from krakenclip.models.config import KrakenClipConfig
from krakenclip.models.errors import KrakenClipError

logger = logging.getLogger(__name__)

def create_parser() -> argparse.ArgumentParser:
    """
    Create and return the main argument parser for KrakenClip.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='krakenclip',
        description="KrakenClip: toolkit for Kraken2 reports, logs and sequence files",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s v{__version__}'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help='KrakenClip commands',
        required=True
    )

    # Analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a Kraken2 report",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    analyze_parser.add_argument(
        'report',
        type=str,
        help='Kraken2 report file'
    )
    analyze_parser.add_argument(
        '--json',
        type=str,
        help='write the report tree as JSON to this file'
    )
    analyze_parser.add_argument(
        '--biom',
        type=str,
        help='write the report as a BIOM table to this file'
    )
    analyze_parser.add_argument(
        '--tax-id',
        type=int,
        help='show lineage and subtree of a taxon'
    )
    analyze_parser.add_argument(
        '--search',
        type=str,
        help='search taxa by name (case-insensitive)'
    )
    analyze_parser.add_argument(
        '--filter',
        type=str,
        help="filter taxa, e.g. 'rank=S,percentage>=1'"
    )
    analyze_parser.add_argument(
        '--info',
        action='store_true',
        help='display aggregated report information'
    )

    # Extract command
    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract sequences based on Kraken2 results",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    extract_parser.add_argument(
        'sequence',
        type=str,
        nargs='+',
        help='input FASTA/FASTQ files'
    )
    extract_parser.add_argument(
        '--log', '-l',
        type=str,
        required=True,
        help='Kraken2 classification log (per-read output)'
    )
    extract_parser.add_argument(
        '--taxids', '-t',
        type=str,
        required=True,
        help='comma-separated list of taxids to extract'
    )
    extract_parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help="output file for extracted sequences ('-' for stdout)"
    )
    extract_parser.add_argument(
        '--report', '-r',
        type=str,
        help='Kraken2 report, needed to include children or parents'
    )
    extract_parser.add_argument(
        '--include-children',
        action='store_true',
        help='also extract reads of all descendant taxa'
    )
    extract_parser.add_argument(
        '--include-parents',
        action='store_true',
        help='also extract reads of all ancestor taxa'
    )
    extract_parser.add_argument(
        '--exclude',
        action='store_true',
        help='write the reads NOT classified to the given taxa'
    )
    extract_parser.add_argument(
        '--stats-output',
        type=str,
        help='write per-taxon extraction statistics (CSV)'
    )
    extract_parser.add_argument(
        '--threads',
        type=int,
        default=None,
        help='sequence files processed in parallel (default: $KRAKENCLIP_THREADS or 1)'
    )

    # Abundance-matrix command
    matrix_parser = subparsers.add_parser(
        "abundance-matrix",
        help="Combine several reports into an abundance matrix",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    matrix_parser.add_argument(
        'reports',
        type=str,
        nargs='+',
        help='Kraken2 report files, one sample each'
    )
    matrix_parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help='output matrix file'
    )
    matrix_parser.add_argument(
        '--rank',
        type=str,
        default='S',
        help=f"taxonomic rank code ({', '.join(code for code, _ in TAXON_LEVELS)})"
    )
    matrix_parser.add_argument(
        '--min-abundance',
        type=float,
        default=0.0,
        help='minimum abundance to include a taxon in a sample'
    )
    matrix_parser.add_argument(
        '--raw-counts',
        action='store_true',
        help='clade read counts instead of percentages'
    )
    matrix_parser.add_argument(
        '--include-unclassified',
        action='store_true',
        help="add an 'Unclassified' row"
    )
    matrix_parser.add_argument(
        '--format',
        choices=['tsv', 'biom'],
        default='tsv',
        help='output format'
    )

    # Generate-test-data command
    generate_parser = subparsers.add_parser(
        "generate-test-data",
        help="Generate a synthetic report (and optionally reads)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    generate_parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help='output report file'
    )
    generate_parser.add_argument(
        '--lines', '-n',
        type=int,
        default=100000,
        help='maximum number of report lines'
    )
    generate_parser.add_argument(
        '--type',
        choices=sorted(DATA_TYPES),
        default='balanced',
        help='shape of the generated taxonomy'
    )
    generate_parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='random seed'
    )
    generate_parser.add_argument(
        '--reads',
        type=int,
        default=0,
        help='number of reads to generate from the report'
    )
    generate_parser.add_argument(
        '--log-output',
        type=str,
        help='classification log for the generated reads'
    )
    generate_parser.add_argument(
        '--sequences-output',
        type=str,
        help='sequence file for the generated reads'
    )
    generate_parser.add_argument(
        '--sequence-format',
        choices=['fasta', 'fastq'],
        default='fastq',
        help='format of the generated reads'
    )
    generate_parser.add_argument(
        '--read-length',
        type=int,
        default=150,
        help='length of the generated reads'
    )

    return parser

def run_analyze(config: KrakenClipConfig) -> None:
    """
    Run the analyze command.

    Args:
        config: Configuration for the analyze command
    """
    from krakenclip.io.parsers import get_parser
    from krakenclip.io.writers import (
        write_json_report, report_to_biom, write_biom,
        format_taxon_info, format_taxa_table, format_report_summary
    )
    from krakenclip.core.taxonomy import find_taxon_info, search_taxa, filter_taxa, summarize_report

    report, stats = get_parser('report').parse(config.report)
    print(f"Hierarchy build time: {stats.build_seconds:.6f} seconds")
    logger.debug(f"Read {stats.lines_read} lines ({stats.lines_skipped} skipped) in {stats.total_seconds:.3f}s")

    if config.info:
        print(format_report_summary(summarize_report(report)))

    if config.search:
        matches = search_taxa(report, config.search)
        print(f"Searching for taxon: {config.search} ({len(matches)} matches)")
        print(format_taxa_table(matches))

    if config.filter:
        matches = filter_taxa(report, config.filter)
        print(f"Applying filter: {config.filter} ({len(matches)} matches)")
        print(format_taxa_table(matches))

    if config.tax_id is not None:
        info = find_taxon_info(report, config.tax_id)
        if info is None:
            print(f"Taxon with ID {config.tax_id} not found")
        else:
            print(format_taxon_info(info))

    if config.json_output:
        write_json_report(report, config.json_output)

    if config.biom_output:
        write_biom(report_to_biom(report, config.report.stem), config.biom_output)

def run_extract(config: KrakenClipConfig) -> None:
    """
    Run the extract command.

    Args:
        config: Configuration for the extract command
    """
    from krakenclip.io.parsers import get_parser
    from krakenclip.io.writers import write_extraction_stats
    from krakenclip.core.taxonomy import expand_taxids
    from krakenclip.core.extraction import extract_sequences

    report = None
    if config.report is not None:
        report, _ = get_parser('report').parse(config.report)

    taxids = expand_taxids(report, config.taxids, config.include_children, config.include_parents)

    track = config.stats_output is not None
    log_parser = get_parser('log', taxids=taxids, track_per_taxon=track)
    selection = log_parser.parse(config.log)

    output = sys.stdout.buffer if str(config.output) == '-' else config.output
    result = extract_sequences(
        config.sequence_files,
        selection.read_ids,
        output,
        exclude=config.exclude,
        threads=config.threads,
        collect_ids=track
    )

    truncated = [f.path for f in result.files if f.truncated]
    if truncated:
        logger.warning(f"Truncated records found in: {', '.join(truncated)}")
    logger.info(f"Sequences extracted successfully to {config.output}")

    if track:
        write_extraction_stats(config.stats_output, taxids, selection, result, report)

def run_abundance_matrix(config: KrakenClipConfig) -> None:
    """
    Run the abundance-matrix command.

    Args:
        config: Configuration for the abundance-matrix command
    """
    from krakenclip.core.abundance import build_abundance_matrix
    from krakenclip.io.writers import matrix_to_biom, write_biom

    matrix = build_abundance_matrix(
        config.reports,
        config.rank,
        config.min_abundance,
        config.normalize,
        config.include_unclassified
    )

    if config.output_format == 'biom':
        write_biom(matrix_to_biom(matrix.to_dataframe(), config.rank), config.output)
    else:
        matrix.write_matrix(config.output)

def run_generate_test_data(config: KrakenClipConfig) -> None:
    """
    Run the generate-test-data command.

    Args:
        config: Configuration for the generate-test-data command
    """
    from krakenclip.core.synthetic import preset_params, generate_report, generate_reads
    from krakenclip.io.parsers import parse_kraken2_report

    params = preset_params(config.data_type, config.num_lines, config.seed)
    generate_report(params, config.output)

    if config.num_reads:
        report, _ = parse_kraken2_report(config.output)
        generate_reads(
            report,
            config.num_reads,
            config.log_output,
            config.sequences_output,
            config.sequence_format,
            config.read_length,
            config.seed
        )

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for KrakenClip command-line interface.

    Args:
        argv: Arguments, sys.argv[1:] when None

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logger = setup_logging(args.verbose)

    try:
        # Create configuration
        config = KrakenClipConfig(args)

        # Dispatch to appropriate command handler
        if config.command == 'analyze':
            run_analyze(config)
        elif config.command == 'extract':
            run_extract(config)
        elif config.command == 'abundance-matrix':
            run_abundance_matrix(config)
        elif config.command == 'generate-test-data':
            run_generate_test_data(config)
        else:
            logger.error(f"Unknown command: {config.command}")
            return 1

        return 0

    except KrakenClipError as e:
        logger.error(f"Error: {str(e)}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {str(e)}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
