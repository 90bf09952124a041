import pytest
from pydantic import ValidationError

from taxassemble.classification import TAXONOMY
from taxassemble.parameter_config import (
    DEFAULT_MIN_OVERLAP,
    DEFAULT_MIN_SCORE,
    AssemblyParameters,
    AssignmentParameters,
    MatchFilterParameters,
)


def test_defaults_applied():
    """Defaults are the usual metagenome settings."""
    assignment = AssignmentParameters()
    assert assignment.algorithm == "lca"
    assert assignment.classification == TAXONOMY
    assert assignment.filters.min_score == DEFAULT_MIN_SCORE
    assert assignment.filters.top_percent == 10.0

    assembly = AssemblyParameters()
    assert assembly.min_overlap == DEFAULT_MIN_OVERLAP
    assert assembly.min_reads == 2
    assert assembly.max_percent_identity == 100.0
    assert assembly.max_number_of_reads == -1
    assert assembly.num_threads is None


@pytest.mark.parametrize(
    "field, value",
    [
        ("min_overlap", 0),
        ("min_reads", 0),
        ("min_length", -1),
        ("max_percent_identity", 0),
        ("max_percent_identity", 100.5),
        ("max_number_of_reads", -2),
        ("max_errors", -5),
        ("num_threads", 0),
    ],
)
def test_invalid_assembly_parameters(field, value):
    with pytest.raises(ValidationError):
        AssemblyParameters(**{field: value})


def test_zero_reads_are_rejected():
    with pytest.raises(ValidationError) as excinfo:
        AssemblyParameters(max_number_of_reads=0)
    assert "max_number_of_reads" in str(excinfo.value)


def test_unknown_algorithm_is_rejected():
    with pytest.raises(ValidationError):
        AssignmentParameters(algorithm="majority")


@pytest.mark.parametrize("percent_to_cover", [50.0, 100.1])
def test_percent_to_cover_range(percent_to_cover):
    with pytest.raises(ValidationError):
        AssignmentParameters(algorithm="weighted-lca", percent_to_cover=percent_to_cover)


@pytest.mark.parametrize(
    "field, value",
    [("top_percent", 101), ("min_score", -1), ("min_complexity", 1.5), ("max_expected", -0.1)],
)
def test_invalid_filters(field, value):
    with pytest.raises(ValidationError):
        MatchFilterParameters(**{field: value})


def test_nested_filters_from_dict():
    parameters = AssignmentParameters(filters={"min_score": 30, "top_percent": 100})
    assert isinstance(parameters.filters, MatchFilterParameters)
    assert parameters.filters.min_score == 30.0
