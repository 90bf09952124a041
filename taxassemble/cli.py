#!/usr/bin/env python
"""
taxassemble command-line interface.

Commands:

- ``taxassemble lca``: assign the reads of a match table to classes of a
  classification tree and write assignment, summary and path reports.
- ``taxassemble assemble``: gene-centric assembly of the reads in a FASTA or
  FASTQ file, with optional overlap graph export.
"""

import logging
import pathlib
import sys
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from .classify import ClassifyArgs, LCAClassificationWorkflow
from .exceptions import CanceledError, TaxAssembleException
from .logging_config import LogContext, setup_logging
from .parameter_config import (
    DEFAULT_MAX_EXPECTED,
    DEFAULT_MIN_OVERLAP,
    DEFAULT_MIN_READS,
    DEFAULT_MIN_SCORE,
    DEFAULT_TOP_PERCENT,
    AssemblyParameters,
    AssignmentParameters,
    MatchFilterParameters,
)
from .progress import ProgressPercentage
from .read_assembler import ReadAssembler
from .utils import get_sample_name, open_file_transparently, parse_read_file

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, pretty_exceptions_show_locals=False)


@app.command(
    name="lca",
    help="Assign reads to classes of a classification tree using their matches.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
def lca(
    matches: Annotated[
        Path,
        typer.Option(
            "--matches",
            "-i",
            help="Tab-separated match table (read_name, <classification>, bit_score, ...).",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    tree: Annotated[
        Path,
        typer.Option(
            "--tree",
            "-t",
            help="Tab-separated tree file (id, parent_id, name, rank).",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    out: Annotated[Path, typer.Option("--out", "-o", help="Output directory.")] = Path("taxassemble_out"),
    algorithm: Annotated[
        str, typer.Option(help="Assignment algorithm (lca, weighted-lca, path).")
    ] = "lca",
    classification: Annotated[
        str, typer.Option(help="Classification name; also the class id column of the match table.")
    ] = "Taxonomy",
    min_score: Annotated[float, typer.Option(help="Minimum bit score.")] = DEFAULT_MIN_SCORE,
    top_percent: Annotated[
        float, typer.Option(help="Keep matches within this percentage of the best score.")
    ] = DEFAULT_TOP_PERCENT,
    max_expected: Annotated[float, typer.Option(help="Maximum e-value.")] = DEFAULT_MAX_EXPECTED,
    min_percent_identity: Annotated[float, typer.Option(help="Minimum percent identity.")] = 0.0,
    min_complexity: Annotated[
        float, typer.Option(help="Reads below this complexity are reported as low complexity.")
    ] = 0.0,
    percent_to_cover: Annotated[
        float, typer.Option(help="Weighted LCA: percent of weight to cover.")
    ] = 80.0,
    min_support_percent: Annotated[
        float, typer.Option(help="Path assignment: minimum support of the assigned node.")
    ] = 0.0,
    disabled: Annotated[
        Optional[List[int]], typer.Option("--disabled", help="Class id to use only as a last resort; repeatable.")
    ] = None,
    official_ranks_only: Annotated[
        bool, typer.Option("--official-ranks-only", help="Only report nodes with an official rank.")
    ] = False,
    show_ids: Annotated[bool, typer.Option("--show-ids", help="Report class ids instead of names.")] = False,
    no_paths: Annotated[bool, typer.Option("--no-paths", help="Do not write taxon paths.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    log_file: Annotated[Optional[Path], typer.Option(help="Also log to this file.")] = None,
):
    """Read classification entry point."""
    setup_logging(verbose=verbose, log_file=log_file)
    try:
        args = ClassifyArgs(
            match_table=matches,
            tree_path=tree,
            output_dir=out,
            parameters=AssignmentParameters(
                algorithm=algorithm,
                classification=classification,
                percent_to_cover=percent_to_cover,
                min_support_percent=min_support_percent,
                filters=MatchFilterParameters(
                    min_score=min_score,
                    top_percent=top_percent,
                    max_expected=max_expected,
                    min_percent_identity=min_percent_identity,
                    min_complexity=min_complexity,
                ),
            ),
            disabled_ids=disabled or [],
            write_paths=not no_paths,
            official_ranks_only=official_ranks_only,
            show_ids=show_ids,
        )
    except ValidationError as e:
        logger.critical(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(code=1)

    with LogContext(logger, command="lca", sample=get_sample_name(matches)):
        try:
            outputs = LCAClassificationWorkflow(args).run_workflow()
        except (TaxAssembleException, OSError) as e:
            logger.critical(f"Classification failed: {e}")
            raise typer.Exit(code=1)
    for kind, path in outputs.items():
        logger.info(f"{kind}: {path}")


@app.command(
    name="assemble",
    help="Gene-centric assembly of reads using exact overlaps.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
def assemble(
    reads: Annotated[
        Path,
        typer.Option(
            "--reads",
            "-i",
            help="Reads to assemble (FASTA/FASTQ, possibly gzipped).",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    out: Annotated[Path, typer.Option("--out", "-o", help="Output contig file (FASTA).")],
    graph: Annotated[
        Optional[Path], typer.Option(help="Also write the overlap graph in GML to this file.")
    ] = None,
    label: Annotated[Optional[str], typer.Option(help="Label of the read set; defaults to the file name.")] = None,
    min_overlap: Annotated[int, typer.Option(help="Minimum exact overlap between reads.")] = DEFAULT_MIN_OVERLAP,
    min_reads: Annotated[int, typer.Option(help="Minimum reads per contig.")] = DEFAULT_MIN_READS,
    min_length: Annotated[int, typer.Option(help="Minimum contig length.")] = 0,
    min_av_coverage: Annotated[float, typer.Option(help="Minimum average coverage.")] = 0.0,
    max_percent_identity: Annotated[
        float,
        typer.Option(help="Remove contigs contained in a longer one at this identity (100 = exact)."),
    ] = 100.0,
    keep_contained: Annotated[
        bool, typer.Option("--keep-contained", help="Do not remove contained contigs.")
    ] = False,
    include_singletons: Annotated[
        bool, typer.Option("--include-singletons", help="Report single unassembled reads.")
    ] = False,
    max_reads: Annotated[int, typer.Option(help="Use at most this many reads, -1 for all.")] = -1,
    max_errors: Annotated[
        int, typer.Option(help="Abort after this many malformed reads, -1 for no limit.")
    ] = -1,
    threads: Annotated[Optional[int], typer.Option(help="Threads for containment filtering.")] = None,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Hide progress bars.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    log_file: Annotated[Optional[Path], typer.Option(help="Also log to this file.")] = None,
):
    """Assembly entry point."""
    setup_logging(verbose=verbose, log_file=log_file)
    try:
        parameters = AssemblyParameters(
            min_overlap=min_overlap,
            min_reads=min_reads,
            min_length=min_length,
            min_av_coverage=min_av_coverage,
            max_percent_identity=max_percent_identity,
            max_number_of_reads=max_reads,
            include_singletons=include_singletons,
            max_errors=max_errors,
            num_threads=threads,
        )
    except ValidationError as e:
        logger.critical(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(code=1)

    label = label or get_sample_name(reads)
    progress = ProgressPercentage(disable=quiet)
    assembler = ReadAssembler(parameters)
    with LogContext(logger, command="assemble", sample=label):
        try:
            assembler.compute_overlap_graph(label, parse_read_file(reads), progress)
            if graph is not None:
                with open_file_transparently(graph, "wt") as handle:
                    nodes, edges = assembler.write_overlap_graph(handle)
                logger.info(f"Wrote overlap graph with {nodes} nodes and {edges} edges to {graph}")

            count = assembler.compute_contigs(progress)
            logger.info(
                f"Contigs: {count}, singletons: {assembler.count_singletons}, "
                f"rejected: {assembler.count_rejected}"
            )
            if not keep_contained:
                removed = assembler.remove_contained_contigs(progress)
                logger.info(f"Removed contigs: {removed}")

            pathlib.Path(out).parent.mkdir(parents=True, exist_ok=True)
            with open_file_transparently(out, "wt") as handle:
                assembler.write_contigs(handle, progress)
        except CanceledError:
            logger.warning("Assembly canceled")
            raise typer.Exit(code=130)
        except (TaxAssembleException, OSError) as e:
            logger.critical(f"Assembly failed: {e}")
            raise typer.Exit(code=1)
        finally:
            progress.close()
    logger.info(f"Wrote {len(assembler.get_contigs())} contigs to {out}")


if __name__ == "__main__":
    app()
