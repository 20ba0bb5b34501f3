"""cluster-reflector command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``cluster-reflector`` script).
"""

from cluster_reflector.cli.main import cli

__all__ = ["cli"]
