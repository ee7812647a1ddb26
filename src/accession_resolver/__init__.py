"""Resolve geographic and sample metadata for NCBI nucleotide and SRA accessions."""

__version__ = "0.1.0"
