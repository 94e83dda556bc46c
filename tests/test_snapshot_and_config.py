import json, os, tempfile

import pytest

from uprof.config import default_config, load_config, validate_config_dict
from uprof.model.snapshot import SnapshotError, load_snapshot, snapshot_from_dict
from uprof.model.validate import ModelValidationError, validate_model
from uprof.printers.graph import render_lines


def test_load_basic_snapshot():
    graph = load_snapshot("examples/snapshots/basic.json")
    assert len(graph) == 1
    thread = next(iter(graph))
    assert thread.id == "main"
    assert thread.sequence == 0
    b = thread.methods["B"]
    assert b.called == 2
    assert thread.resolve(b.parents[0]).name == "A"
    assert validate_model(graph) == []


def test_class_and_instance_methods_are_distinct():
    graph = load_snapshot("examples/snapshots/class_methods.json")
    first = graph.sorted_threads()[0]
    assert first.id == 7
    assert "<Class::C1>#hello" in first.methods
    assert "C1#hello" in first.methods
    assert len(first.methods) == 5
    lines = render_lines(graph, 20)
    assert "Object#initialize" not in [line.split()[-1] for line in lines if "%" in line]
    assert lines.index("Thread ID: 7") < lines.index("Thread ID: 2")


def test_schema_errors_are_listed():
    with pytest.raises(SnapshotError) as exc:
        snapshot_from_dict({"threads": [{"id": "t", "methods": [{"name": "A", "called": "x"}]}]})
    text = "\n".join(exc.value.errors)
    assert "'total_time' is a required property" in text
    assert "'x' is not of type 'integer'" in text


def test_duplicate_method_in_snapshot():
    m = {"name": "A", "total_time": 1.0, "self_time": 1.0, "called": 1}
    with pytest.raises(ModelValidationError) as exc:
        snapshot_from_dict({"threads": [{"id": "t", "methods": [m, dict(m)]}]})
    assert "duplicate method 'A'" in exc.value.problems[0]


def test_children_time_must_match():
    m = {"name": "A", "total_time": 3.0, "self_time": 1.0, "children_time": 1.5, "called": 1}
    with pytest.raises(ModelValidationError) as exc:
        snapshot_from_dict({"threads": [{"id": "t", "methods": [m]}]})
    assert "children_time 1.5" in exc.value.problems[0]


def test_broken_snapshot_loads_but_fails_validation():
    graph = load_snapshot("examples/snapshots/broken.json")
    problems = validate_model(graph)
    assert any("exceeds total_time" in p for p in problems)
    assert any("'Missing'" in p for p in problems)


def test_unreadable_snapshots():
    with tempfile.TemporaryDirectory() as td:
        p = os.path.join(td, "bad.json")
        open(p, "w", encoding="utf-8").write("{not json")
        with pytest.raises(SnapshotError):
            load_snapshot(p)
        with pytest.raises(SnapshotError):
            load_snapshot(os.path.join(td, "missing.json"))


def test_empty_snapshot():
    graph = snapshot_from_dict({"threads": []})
    assert render_lines(graph) == []


def test_config_defaults_and_overrides():
    with tempfile.TemporaryDirectory() as td:
        p = os.path.join(td, ".uprof.yml")
        assert load_config(p) == default_config()
        open(p, "w", encoding="utf-8").write("min_percent: 5\noutput: reports/graph.txt\nextra: 1\n")
        cfg = load_config(p)
        assert cfg["min_percent"] == 5
        assert cfg["output"] == "reports/graph.txt"
        assert "extra" not in cfg


def test_config_malformed_yaml_falls_back():
    with tempfile.TemporaryDirectory() as td:
        p = os.path.join(td, ".uprof.yml")
        open(p, "w", encoding="utf-8").write("min_percent: [1\n")
        assert load_config(p) == default_config()


def test_config_validate_suggestions():
    errs = validate_config_dict({"min_percnt": 2})
    assert any("did you mean 'min_percent'" in e for e in errs)
    assert validate_config_dict({"min_percent": 100})
    assert validate_config_dict(default_config()) == []


def test_snapshot_round_trips_through_json():
    with open("examples/snapshots/basic.json", "r", encoding="utf-8") as f:
        data = json.load(f)
    assert render_lines(snapshot_from_dict(data)) == render_lines(
        load_snapshot("examples/snapshots/basic.json")
    )


def test_config_messages_name_project_keys():
    errs = validate_config_dict({"outptu": "x", "zzz": 1, "log_level": "debug", "min_percent": -1})
    assert "unknown key 'outptu' (did you mean 'output'?)" in errs
    assert "unknown key 'zzz'" in errs
    assert any(e.startswith("log_level:") and "(did you mean 'DEBUG'?)" in e for e in errs)
    assert any(e.startswith("min_percent:") for e in errs)


def test_log_level_of_tolerates_bad_values():
    import logging

    from uprof.config import log_level_of

    assert log_level_of({"log_level": "debug"}) == logging.DEBUG
    assert log_level_of({"log_level": "INFO"}) == logging.INFO
    assert log_level_of({"log_level": 5}) == logging.WARNING
    assert log_level_of({"log_level": "loud"}) == logging.WARNING
    assert log_level_of(default_config()) == logging.WARNING
