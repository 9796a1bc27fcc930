from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest
import yaml

from internflow.scenario import AuditLogger, ScenarioLoader, ScenarioLoadError, ScenarioPipeline


def write_yaml(path: Path, payload: object) -> Path:
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


ACTORS = [
    {"role": "staff", "actor_id": "S-001"},
    {"role": "organization", "actor_id": "R-001", "company": "Acme", "approved": True},
    {"role": "applicant", "actor_id": "U-001", "year_of_study": 2, "major": "Computer Science"},
]


def posting_step(ref: str, title: str, level: str, close_date: date) -> dict:
    return {
        "op": "create_posting",
        "actor": "R-001",
        "ref": ref,
        "title": title,
        "level": level,
        "major": "Computer Science",
        "open_date": date(2025, 2, 1),
        "close_date": close_date,
        "capacity": 1,
    }


def test_pipeline_replays_filters_withdrawals_and_audit(tmp_path: Path) -> None:
    scenario_path = write_yaml(
        tmp_path / "scenario.yaml",
        {
            "as_of": date(2025, 3, 1),
            "actors": ACTORS,
            "steps": [
                posting_step("basic", "Support Intern", "BASIC", date(2025, 4, 30)),
                posting_step("mid", "Data Intern", "INTERMEDIATE", date(2025, 4, 30)),
                posting_step("late", "Ops Intern", "BASIC", date(2025, 3, 10)),
                {"op": "approve_posting", "actor": "S-001", "posting": "basic"},
                {"op": "approve_posting", "actor": "S-001", "posting": "mid"},
                {"op": "approve_posting", "actor": "S-001", "posting": "late"},
                {"op": "list_postings", "actor": "U-001"},
                {
                    "op": "add_filter",
                    "actor": "U-001",
                    "filter": {"kind": "close_date_range", "start": "2025-04-01"},
                },
                {"op": "list_postings", "actor": "U-001"},
                {"op": "clear_filters", "actor": "U-001"},
                {"op": "submit", "actor": "U-001", "posting": "mid"},
                {"op": "submit", "actor": "U-001", "posting": "basic", "ref": "app"},
                {"op": "approve_candidacy", "actor": "R-001", "candidacy": "app"},
                {"op": "request_withdrawal", "actor": "U-001", "candidacy": "app"},
                {"op": "approve_withdrawal", "actor": "S-001", "candidacy": "app"},
                {"op": "approve_withdrawal", "actor": "S-001", "candidacy": "app"},
            ],
        },
    )
    output_path = tmp_path / "results.json"
    audit_path = tmp_path / "audit.jsonl"

    payload = ScenarioPipeline().run(
        scenario_path=scenario_path,
        output_path=output_path,
        audit_logger=AuditLogger(audit_path),
    )

    steps = payload["steps"]
    refs = payload["state"]["refs"]
    assert payload["metadata"]["as_of"] == "2025-03-01"
    assert sorted(steps[6]["result"]["posting_ids"]) == sorted([refs["basic"], refs["late"]])
    assert steps[7]["result"]["filters"] == ["visible", "status", "major", "year", "close_date_range"]
    assert steps[8]["result"]["posting_ids"] == [refs["basic"]]
    assert steps[9]["result"]["filters"] == ["visible", "status", "major", "year"]
    assert steps[10]["error"]["reason"] == "year_ineligible"
    assert steps[14]["result"]["status"] == "WITHDRAWN"
    assert steps[15]["error"]["kind"] == "no_request_pending"
    assert payload["metadata"]["failed_steps"] == [10, 15]

    basic = next(p for p in payload["state"]["postings"] if p["posting_id"] == refs["basic"])
    assert basic["filled"] == 0
    assert basic["status"] == "APPROVED"

    assert json.loads(output_path.read_text(encoding="utf-8")) == payload
    assert len(audit_path.read_text(encoding="utf-8").splitlines()) == 16


def test_pipeline_applies_scenario_config(tmp_path: Path) -> None:
    scenario_path = write_yaml(
        tmp_path / "scenario.yaml",
        {
            "config": {"policy": {"max_postings_per_organization": 1}},
            "actors": ACTORS,
            "steps": [
                posting_step("one", "First", "BASIC", date(2030, 1, 1)),
                posting_step("two", "Second", "BASIC", date(2030, 1, 1)),
            ],
        },
    )

    payload = ScenarioPipeline().run(scenario_path=scenario_path, output_path=tmp_path / "out.json")

    assert payload["metadata"]["failed_steps"] == [1]
    assert payload["steps"][1]["error"]["reason"] == "quota"


def test_step_with_unknown_actor_fails_without_stopping(tmp_path: Path) -> None:
    scenario_path = write_yaml(
        tmp_path / "scenario.yaml",
        {
            "actors": ACTORS,
            "steps": [
                {"op": "approve_posting", "actor": "S-404", "posting": "missing"},
                {"op": "report", "actor": "S-001"},
            ],
        },
    )

    payload = ScenarioPipeline().run(scenario_path=scenario_path, output_path=tmp_path / "out.json")

    assert payload["steps"][0]["error"]["kind"] == "not_found"
    assert payload["steps"][1]["ok"] is True


def test_loader_collects_all_problems(tmp_path: Path) -> None:
    scenario_path = write_yaml(
        tmp_path / "scenario.yaml",
        {
            "config": {"policy": {"max_active_candidacies": 0}},
            "actors": [{"role": "applicant", "actor_id": "U-1", "year_of_study": 9, "major": "CS"}],
            "steps": [{"op": "teleport"}],
        },
    )

    with pytest.raises(ScenarioLoadError) as exc:
        ScenarioLoader().load(scenario_path)

    assert len(exc.value.errors) == 3
    assert any("teleport" in message for message in exc.value.errors)


def test_malformed_step_arguments_fail_the_step_only(tmp_path: Path) -> None:
    scenario_path = write_yaml(
        tmp_path / "scenario.yaml",
        {
            "actors": ACTORS,
            "steps": [
                posting_step("basic", "Support Intern", "BASIC", date(2030, 1, 1)),
                {"op": "edit_posting", "actor": "R-001", "posting": "basic", "fields": "oops"},
                {"op": "approve_posting", "actor": "S-001", "posting": "basic"},
                {"op": "set_visibility", "actor": "R-001", "posting": "basic", "visible": "false"},
                {"op": "set_visibility", "actor": "R-001", "posting": "basic", "visible": False},
            ],
        },
    )

    payload = ScenarioPipeline().run(scenario_path=scenario_path, output_path=tmp_path / "out.json")

    assert payload["metadata"]["failed_steps"] == [1, 3]
    assert payload["steps"][1]["error"]["kind"] == "validation_error"
    assert payload["steps"][3]["error"]["kind"] == "validation_error"
    assert payload["state"]["postings"][0]["visible"] is False
    assert (tmp_path / "out.json").exists()
