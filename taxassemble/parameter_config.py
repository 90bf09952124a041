"""
Validated parameter sets for assignment and assembly.

Defaults follow the usual settings for metagenome analysis: a minimum bit
score of 50, a 10% top-percent window, a maximum e-value of 0.01, and for
gene-centric assembly a minimum overlap of 20 bases with at least two reads
per contig.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .classification import TAXONOMY

DEFAULT_MIN_SCORE = 50.0
DEFAULT_TOP_PERCENT = 10.0
DEFAULT_MAX_EXPECTED = 0.01
DEFAULT_MIN_OVERLAP = 20
DEFAULT_MIN_READS = 2


class MatchFilterParameters(BaseModel):
    """Thresholds used to select the active matches of a read."""

    min_score: float = Field(
        default=DEFAULT_MIN_SCORE, ge=0, description="Minimum bit score of a match."
    )
    top_percent: float = Field(
        default=DEFAULT_TOP_PERCENT,
        ge=0,
        le=100,
        description="Keep matches whose bit score is within this percentage of the best.",
    )
    max_expected: float = Field(
        default=DEFAULT_MAX_EXPECTED, ge=0, description="Maximum e-value of a match."
    )
    min_percent_identity: float = Field(
        default=0.0, ge=0, le=100, description="Minimum percent identity of a match."
    )
    min_complexity: float = Field(
        default=0.0,
        ge=0,
        le=1,
        description="Reads with a lower sequence complexity are reported as low complexity.",
    )


class AssignmentParameters(BaseModel):
    """Selects and configures the assignment algorithm."""

    algorithm: Literal["lca", "weighted-lca", "path"] = Field(
        default="lca", description="Assignment algorithm."
    )
    classification: str = Field(
        default=TAXONOMY, min_length=1, description="Name of the classification to assign in."
    )
    percent_to_cover: float = Field(
        default=80.0,
        gt=50,
        le=100,
        description="Weighted LCA: percent of the total weight the chosen node must cover.",
    )
    min_support_percent: float = Field(
        default=0.0,
        ge=0,
        le=100,
        description="Path assignment: deepest node on the path with at least this support.",
    )
    filters: MatchFilterParameters = Field(default_factory=MatchFilterParameters)


class AssemblyParameters(BaseModel):
    """Parameters of the gene-centric assembler."""

    min_overlap: int = Field(
        default=DEFAULT_MIN_OVERLAP, ge=1, description="Minimum exact overlap between reads."
    )
    min_reads: int = Field(
        default=DEFAULT_MIN_READS, ge=1, description="Minimum number of reads per contig."
    )
    min_length: int = Field(default=0, ge=0, description="Minimum contig length.")
    min_av_coverage: float = Field(
        default=0.0, ge=0, description="Minimum average coverage of a contig."
    )
    max_percent_identity: float = Field(
        default=100.0,
        gt=0,
        le=100,
        description="Contigs contained in a longer one at this identity or more are removed.",
    )
    max_number_of_reads: int = Field(
        default=-1, ge=-1, description="Use at most this many reads, -1 for all."
    )
    include_singletons: bool = Field(
        default=False, description="Report single reads below min_reads as singleton contigs."
    )
    max_errors: int = Field(
        default=-1,
        ge=-1,
        description="Abort when more reads than this are skipped as malformed, -1 for no limit.",
    )
    num_threads: Optional[int] = Field(
        default=None, ge=1, description="Worker threads for containment filtering."
    )

    @model_validator(mode="after")
    def validate_max_reads(self) -> "AssemblyParameters":
        """Zero reads can never produce a contig."""
        if self.max_number_of_reads == 0:
            raise ValueError("max_number_of_reads must be positive or -1.")
        return self
