"""Command-line interface for accession-resolver."""

import argparse
import logging
import sys
from typing import List, Optional

from accession_resolver.clients.entrez import EntrezClient
from accession_resolver.config import ResolverConfig
from accession_resolver.models import Accession, SourceKind
from accession_resolver.output import TsvWriter
from accession_resolver.resolver import MetadataResolver
from accession_resolver.runner import BatchRunner, BatchStats, parse_accession_line, read_accessions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accession-resolver",
        description=(
            "Resolve location and sample metadata for NCBI nucleotide (NT) and "
            "SRA run accessions into a single TSV table."
        ),
    )
    parser.add_argument(
        "accessions",
        nargs="*",
        help="Accessions to resolve; prefix runs with 'sra:' (e.g., MN908947 sra:SRR1234567)",
    )
    parser.add_argument(
        "-f", "--file", type=str, default=None,
        help="File of accessions, one per line ('sra:' tags honoured, '#' comments skipped)",
    )
    parser.add_argument(
        "--nt-file", type=str, default=None,
        help="File of nucleotide accessions, one per line",
    )
    parser.add_argument(
        "--sra-file", type=str, default=None,
        help="File of SRA run accessions, one per line",
    )
    parser.add_argument(
        "-o", "--output", type=str, default="unified_metadata.tsv",
        help="Output TSV path (default: unified_metadata.tsv)",
    )
    parser.add_argument(
        "--max-retries", type=int, default=None, dest="max_retries",
        help="Attempts per remote call (default: 5)",
    )
    parser.add_argument(
        "--retry-delay", type=float, default=None,
        help="Base backoff delay in seconds, doubled per retry (default: 3)",
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Per-request timeout in seconds (default: 17)",
    )
    parser.add_argument(
        "--delay", type=float, default=None,
        help="Pause between accessions in seconds (default: 0.5)",
    )
    parser.add_argument(
        "--longitude-first", action="store_true",
        help="Read the first number of a lat_lon string as longitude",
    )
    parser.add_argument(
        "--ncbi-api-key", type=str, default=None,
        help="NCBI API key for higher rate limits (env: NCBI_API_KEY)",
    )
    parser.add_argument(
        "--email", type=str, default=None,
        help="Contact e-mail sent to NCBI with each request (env: NCBI_EMAIL)",
    )
    parser.add_argument(
        "--log-file", type=str, default=None,
        help="Also write progress messages to this file",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable verbose/debug logging",
    )
    return parser


def collect_accessions(args: argparse.Namespace) -> List[Accession]:
    accessions = []
    for item in args.accessions or []:
        accession = parse_accession_line(item)
        if accession is not None:
            accessions.append(accession)

    for path, source in (
        (args.file, SourceKind.NUCLEOTIDE),
        (args.nt_file, SourceKind.NUCLEOTIDE),
        (args.sra_file, SourceKind.RUN),
    ):
        if not path:
            continue
        try:
            with open(path) as fh:
                accessions.extend(read_accessions(fh, default_source=source))
        except FileNotFoundError:
            print(f"Error: file not found: {path}", file=sys.stderr)
            sys.exit(1)
    return accessions


def configure_logging(verbose: bool, log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        handlers=handlers,
    )


def print_summary(stats: BatchStats, output: str) -> None:
    print("Summary:")
    print(f"  Total accessions processed:     {stats.processed}")
    print(f"  NT accessions processed:        {stats.by_source[SourceKind.NUCLEOTIDE.label]}")
    print(f"  SRA accessions processed:       {stats.by_source[SourceKind.RUN.label]}")
    print(f"  Accessions with coordinates:    {stats.with_coordinates}")
    print(f"  Accessions without coordinates: {stats.without_coordinates}")
    if stats.failed:
        print(f"  Accessions that failed:         {stats.failed}")
    if stats.processed:
        print(f"  Coordinate success rate:        {stats.coordinate_rate:.1f}%")
    print(f"Output: {output}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose, args.log_file)

    accessions = collect_accessions(args)
    if not accessions:
        parser.error("No accessions provided. Supply them as arguments or via --file/--nt-file/--sra-file.")

    try:
        config = ResolverConfig.from_env(
            max_retry_attempts=args.max_retries,
            retry_base_delay=args.retry_delay,
            per_call_timeout=args.timeout,
            inter_accession_delay=args.delay,
            longitude_first=args.longitude_first or None,
            ncbi_api_key=args.ncbi_api_key,
            email=args.email,
        )
    except ValueError as exc:
        parser.error(str(exc))

    client = EntrezClient.from_config(config)
    resolver = MetadataResolver.from_config(config, client)
    runner = BatchRunner(resolver, inter_accession_delay=config.inter_accession_delay)

    print(f"Resolving metadata for {len(accessions)} accession(s)...")
    with open(args.output, "w", newline="", encoding="utf-8") as fh:
        writer = TsvWriter(fh)
        try:
            for record in runner.iter_records(accessions):
                writer.write(record)
        except KeyboardInterrupt:
            print(f"Interrupted after {runner.stats.processed} accession(s).", file=sys.stderr)
            print_summary(runner.stats, args.output)
            sys.exit(130)

    print_summary(runner.stats, args.output)


if __name__ == "__main__":
    main()
