"""
Read classification workflow: match table in, class assignments out.

The match table is a tab-separated file with one row per (read, match):

    read_name  Taxonomy  bit_score  expected  percent_identity  complexity

Only ``read_name``, the classification column and ``bit_score`` are required.
A row whose class id is empty stands for a read without matches.
"""

import logging
import pathlib
import time
from typing import Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd
from pydantic import BaseModel, Field, field_validator

from .active_matches import compute_active_matches, is_low_complexity
from .assignment import AssignmentAlgorithm, create_assignment_algorithm
from .classification import ClassificationManager, ClassificationTree, load_classification_tree
from .exceptions import InvalidInputFileError
from .genomic_types import LOW_COMPLEXITY_ID, ClassId, ReadAssignments, TaxPath
from .logging_config import PerformanceLogger
from .output import AssignmentReporter, write_table
from .parameter_config import AssignmentParameters
from .reads import MatchBlock, ReadBlock
from .taxon_path import compute_tax_path
from .utils import get_sample_name

logger = logging.getLogger(__name__)

READ_NAME_COLUMN = "read_name"
BIT_SCORE_COLUMN = "bit_score"
OPTIONAL_FLOAT_COLUMNS = ("expected", "percent_identity", "complexity")


def read_match_table(
    table_path: Union[str, pathlib.Path], classification: str
) -> Iterator[ReadBlock]:
    """
    Yield one :class:`ReadBlock` per read of a match table, in input order.

    Args:
        table_path: Tab-separated match table.
        classification: Name of the column holding class ids.

    Raises:
        InvalidInputFileError: If the table cannot be read or lacks columns.
    """
    table_path = pathlib.Path(table_path)
    if not table_path.is_file():
        raise InvalidInputFileError(f"Match table not found: {table_path}")
    try:
        table = pd.read_csv(table_path, sep="\t", dtype={READ_NAME_COLUMN: str})
    except (ValueError, pd.errors.ParserError) as e:
        raise InvalidInputFileError(f"Could not parse match table {table_path}: {e}") from e

    required = [READ_NAME_COLUMN, classification, BIT_SCORE_COLUMN]
    missing = [c for c in required if c not in table.columns]
    if missing:
        raise InvalidInputFileError(
            "Match table is missing columns", {"path": str(table_path), "missing": missing}
        )

    for column in OPTIONAL_FLOAT_COLUMNS:
        if column not in table.columns:
            table[column] = 0.0
    numeric_columns = list(OPTIONAL_FLOAT_COLUMNS) + [BIT_SCORE_COLUMN]
    table[numeric_columns] = (
        table[numeric_columns].apply(pd.to_numeric, errors="coerce").fillna(0.0)
    )
    table[classification] = pd.to_numeric(table[classification], errors="coerce")

    logger.info(f"Read {len(table)} match rows from {table_path}")
    for read_name, rows in table.groupby(READ_NAME_COLUMN, sort=False):
        matches = [
            MatchBlock(
                class_ids={classification: int(row[classification])},
                bit_score=float(row[BIT_SCORE_COLUMN]),
                expected=float(row["expected"]),
                percent_identity=float(row["percent_identity"]),
                ref_name=str(row["ref_name"]) if "ref_name" in rows.columns else "",
            )
            for _, row in rows.iterrows()
            if pd.notna(row[classification])
        ]
        yield ReadBlock(
            read_name=str(read_name),
            complexity=float(rows["complexity"].iloc[0]),
            matches=matches,
        )


def classify_read(
    read: ReadBlock,
    algorithm: AssignmentAlgorithm,
    parameters: AssignmentParameters,
    tree: ClassificationTree,
) -> Tuple[ClassId, TaxPath]:
    """Class id and percent-support path of one read."""
    if is_low_complexity(read, parameters.filters.min_complexity):
        return LOW_COMPLEXITY_ID, [(LOW_COMPLEXITY_ID, 100.0)]
    active_matches = compute_active_matches(read, parameters.classification, parameters.filters)
    class_id = algorithm.compute_assignment(active_matches, read)
    path = compute_tax_path(active_matches, read, parameters.classification, tree)
    return class_id, path


class ClassifyArgs(BaseModel):
    """Validated arguments of the classification workflow."""

    match_table: pathlib.Path = Field(description="Tab-separated match table.")
    tree_path: pathlib.Path = Field(description="Tab-separated classification tree (id, parent_id, name, rank).")
    output_dir: pathlib.Path = Field(
        default=pathlib.Path("taxassemble_out"), description="Output directory."
    )
    parameters: AssignmentParameters = Field(default_factory=AssignmentParameters)
    disabled_ids: List[int] = Field(
        default_factory=list, description="Class ids used only when nothing else is hit."
    )
    write_paths: bool = Field(default=True, description="Write the taxon path of every read.")
    show_rank: bool = Field(default=True, description="Prefix path entries with rank letters.")
    official_ranks_only: bool = Field(default=False, description="Only report nodes with an official rank.")
    show_ids: bool = Field(default=False, description="Report class ids instead of names.")

    @field_validator("match_table", "tree_path", mode="before")
    @classmethod
    def validate_path_exists(cls, v: Union[str, pathlib.Path]) -> pathlib.Path:
        path_obj = pathlib.Path(v)
        if not path_obj.is_file():
            raise ValueError(f"File does not exist: {v}")
        return path_obj


class LCAClassificationWorkflow:
    """Loads the tree, assigns every read of a match table and writes the reports."""

    def __init__(self, args: ClassifyArgs) -> None:
        self.args = args
        self.tree: Optional[ClassificationTree] = None
        self.perf = PerformanceLogger()
        logger.info("Initialized LCAClassificationWorkflow")

    def _initialize_tree(self) -> ClassificationTree:
        self.tree = load_classification_tree(
            self.args.tree_path,
            name=self.args.parameters.classification,
            disabled_ids=self.args.disabled_ids,
        )
        ClassificationManager.register(self.tree)
        return self.tree

    def classify_reads(self) -> Tuple[ReadAssignments, List[Tuple[str, TaxPath]]]:
        """Assign every read of the match table; returns (assignments, paths)."""
        tree = self.tree or self._initialize_tree()
        parameters = self.args.parameters
        algorithm = create_assignment_algorithm(parameters, tree)

        assignments: ReadAssignments = {}
        paths: List[Tuple[str, TaxPath]] = []
        start = time.perf_counter()
        for read in read_match_table(self.args.match_table, parameters.classification):
            class_id, path = classify_read(read, algorithm, parameters, tree)
            if read.read_name in assignments:
                logger.warning(f"Read {read.read_name} occurs more than once; keeping the last assignment")
            assignments[read.read_name] = class_id
            paths.append((read.read_name, path))
        self.perf.log_throughput("classify_reads", len(paths), time.perf_counter() - start)
        return assignments, paths

    def run_workflow(self) -> Dict[str, pathlib.Path]:
        """
        Run the classification and write its outputs.

        Returns:
            Output kind ("assignments", "summary", "paths") mapped to the file written.
        """
        logger.info("Starting classification workflow")
        tree = self._initialize_tree()
        assignments, paths = self.classify_reads()

        sample_name = get_sample_name(self.args.match_table)
        output_dir = self.args.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        reporter = AssignmentReporter(
            tree,
            show_rank=self.args.show_rank,
            official_ranks_only=self.args.official_ranks_only,
            show_ids=self.args.show_ids,
        )

        outputs = {
            "assignments": write_table(
                reporter.build_assignment_table(assignments), output_dir / f"{sample_name}.assignments.tsv"
            ),
            "summary": write_table(
                reporter.build_summary_table(assignments), output_dir / f"{sample_name}.summary.tsv"
            ),
        }
        if self.args.write_paths:
            path_file = output_dir / f"{sample_name}.paths.txt"
            with open(path_file, "w") as handle:
                reporter.write_taxon_paths(paths, handle)
            outputs["paths"] = path_file

        logger.info(reporter.generate_report_string(assignments))
        logger.info(f"Classification workflow completed: {len(assignments)} reads")
        return outputs
