"""
taxassemble: taxonomic LCA assignment of reads and gene-centric assembly.

This package provides a lowest-common-ancestor assignment engine that places
reads in a classification tree from their alignment matches, and an
overlap-graph assembler that builds contigs from the reads of one class.
"""

__version__ = "0.1.0"

# Core classes and functions for easier access
from .assignment import (
    AssignmentAlgorithm,
    AssignmentUsingLCA,
    AssignmentUsingTaxonPath,
    AssignmentUsingWeightedLCA,
    create_assignment_algorithm,
)
from .classification import ClassificationManager, ClassificationTree, load_classification_tree
from .containment import remove_contained_contigs
from .contig_builder import Contig, ContigBuilder
from .overlap_graph import OverlapGraph, OverlapGraphBuilder
from .path_extractor import PathExtractor
from .read_assembler import ReadAssembler
from .reads import MatchBlock, ReadBlock
from .taxon_path import compute_tax_path

__all__ = [
    "AssignmentAlgorithm",
    "AssignmentUsingLCA",
    "AssignmentUsingWeightedLCA",
    "AssignmentUsingTaxonPath",
    "create_assignment_algorithm",
    "ClassificationTree",
    "ClassificationManager",
    "load_classification_tree",
    "compute_tax_path",
    "MatchBlock",
    "ReadBlock",
    "OverlapGraph",
    "OverlapGraphBuilder",
    "PathExtractor",
    "Contig",
    "ContigBuilder",
    "remove_contained_contigs",
    "ReadAssembler",
    "__version__",
]
