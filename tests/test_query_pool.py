import json
from pathlib import Path

import pytest

from sqlstress.core.query_pool import (
    QueryPoolBuilder,
    WorkloadError,
    load_query_pool,
    parse_workload,
)
from sqlstress.models import WorkloadFileType

EXAMPLE = Path(__file__).parent.parent / "stress.example.json"


def _pool(doc):
    return QueryPoolBuilder().build(parse_workload(json.dumps(doc)))


def test_frequency_copies():
    pool = _pool({"queries": [{"query": "a", "frequency": 3}, {"query": "b"}]})
    assert [t.text for t in pool.entries] == ["a", "a", "a", "b"]


@pytest.mark.parametrize("frequency", [0, -2, None])
def test_frequency_clamped_to_one(frequency):
    pool = _pool({"queries": [{"query": "a", "frequency": frequency}]})
    assert len(pool) == 1


def test_null_collections_accepted():
    pool = _pool(
        {
            "queries": [{"query": "a", "parameters": None, "sqlContext": None}],
            "queryGroups": None,
        }
    )
    assert pool[0].parameters == {}
    assert pool[0].sql_context == []
    assert pool.groups == {}


def test_groups_indexed():
    pool = _pool(
        {
            "queries": [{"queryGroup": "g", "frequency": 2}],
            "queryGroups": [{"name": "g", "queries": ["select 1", "select 2"]}],
        }
    )
    assert len(pool) == 2
    assert pool.groups["g"].queries == ["select 1", "select 2"]


def test_duplicate_group_names_rejected():
    with pytest.raises(WorkloadError, match="at least two query groups named g"):
        _pool(
            {
                "queries": [{"queryGroup": "g"}],
                "queryGroups": [
                    {"name": "g", "queries": ["select 1"]},
                    {"name": "g", "queries": ["select 2"]},
                ],
            }
        )


def test_unknown_group_rejected():
    with pytest.raises(WorkloadError, match="unknown query group"):
        _pool({"queries": [{"queryGroup": "nope"}]})


def test_empty_group_rejected():
    with pytest.raises(WorkloadError, match="zero queries"):
        _pool(
            {
                "queries": [{"queryGroup": "g"}],
                "queryGroups": [{"name": "g", "queries": []}],
            }
        )


@pytest.mark.parametrize(
    "entry",
    [
        {"query": "select 1", "queryGroup": "g"},
        {"frequency": 2},
    ],
)
def test_query_or_group_required(entry):
    with pytest.raises(WorkloadError, match="queryGroup"):
        parse_workload(json.dumps({"queries": [entry]}))


def test_non_positive_step_rejected():
    doc = {"queries": [{"query": ":n", "sequence": {"name": "n", "start": 1, "end": 2, "step": 0}}]}
    with pytest.raises(WorkloadError):
        parse_workload(json.dumps(doc))


def test_sequence_end_before_start_rejected():
    doc = {"queries": [{"query": ":n", "sequence": {"name": "n", "start": 5, "end": 1}}]}
    with pytest.raises(WorkloadError, match="before start"):
        parse_workload(json.dumps(doc))


def test_malformed_json_rejected():
    with pytest.raises(WorkloadError):
        parse_workload("{not json")


def test_empty_workload_rejected():
    with pytest.raises(WorkloadError, match="no queries"):
        _pool({"queries": []})


def test_missing_file(tmp_path):
    with pytest.raises(WorkloadError, match="does not exist"):
        load_query_pool(tmp_path / "missing.json", WorkloadFileType.STRESS_JSON)


def test_undecodable_file_rejected(tmp_path):
    path = tmp_path / "stress.json"
    path.write_bytes(b'{"queries": [{"query": "select \xff"}]}')
    with pytest.raises(WorkloadError, match="unable to read"):
        load_query_pool(path, WorkloadFileType.STRESS_JSON)


def test_example_workload_loads():
    pool = load_query_pool(EXAMPLE, WorkloadFileType.STRESS_JSON)
    assert len(pool) == 7
    assert "ctas" in pool.groups
