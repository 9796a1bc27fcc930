"""Scenario replay: drive the workflow engine from a YAML/JSON script."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Callable

import pendulum
from pendulum.parsing.exceptions import ParserError
import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .container import WorkflowContainer, create_container
from .core import EligibilityFilter, WorkflowError, build_predicate
from .core.errors import ValidationError
from .reports import build_posting_report, report_to_dict
from .schemas import Applicant, Organization, Staff, parse_actor
from .schemas.config import load_config

ActorRecord = Applicant | Organization | Staff


class ScenarioStep(BaseModel):
    """Single operation in a scenario script."""

    op: str
    actor: str | None = None
    ref: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    def arguments(self) -> dict[str, Any]:
        merged = dict(self.model_extra or {})
        merged.update(self.params)
        return merged


class Scenario(BaseModel):
    """Actors to register and steps to replay."""

    as_of: date | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    actors: list[dict[str, Any]] = Field(default_factory=list)
    steps: list[ScenarioStep] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class ScenarioLoadError(ValueError):
    """Raised when a scenario file contains invalid entries."""

    def __init__(self, errors: list[str]):
        super().__init__("Scenario loading failed")
        self.errors = errors

    def __str__(self) -> str:
        return f"Scenario loading failed: {self.errors}"


class ScenarioLoader:
    """Load and validate scenario documents."""

    def load(self, path: Path) -> Scenario:
        with path.open("r", encoding="utf-8") as handle:
            try:
                raw = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ScenarioLoadError([f"invalid YAML/JSON ({exc})"]) from exc
        if not isinstance(raw, dict):
            raise ScenarioLoadError(["scenario must be a mapping"])
        try:
            scenario = Scenario.model_validate(raw)
        except PydanticValidationError as exc:
            raise ScenarioLoadError(
                [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
            ) from exc

        errors: list[str] = []
        seen: set[str] = set()
        for idx, actor in enumerate(scenario.actors):
            try:
                actor_id = parse_actor(actor).actor_id
            except PydanticValidationError as exc:
                errors.append(f"actors[{idx}]: {exc.errors()[0]['msg']}")
                continue
            if actor_id in seen:
                errors.append(f"actors[{idx}]: duplicate actor_id '{actor_id}'")
            seen.add(actor_id)
        for idx, step in enumerate(scenario.steps):
            if step.op not in ScenarioRunner.OPERATIONS:
                errors.append(f"steps[{idx}]: unsupported operation '{step.op}'")
        if scenario.config:
            try:
                load_config(scenario.config)
            except PydanticValidationError as exc:
                errors.append(f"config: {exc.errors()[0]['msg']}")
        if errors:
            raise ScenarioLoadError(errors)
        return scenario


@dataclass(slots=True)
class StepOutcome:
    """Result of replaying one step."""

    index: int
    op: str
    actor: str | None
    ok: bool
    result: Any = None
    error: dict[str, Any] | None = None


class ScenarioRunner:
    """Replay scenario steps against a container's services."""

    OPERATIONS: dict[str, str] = {
        "approve_organization": "_approve_organization",
        "reject_organization": "_reject_organization",
        "create_posting": "_create_posting",
        "edit_posting": "_edit_posting",
        "delete_posting": "_delete_posting",
        "set_visibility": "_set_visibility",
        "approve_posting": "_approve_posting",
        "reject_posting": "_reject_posting",
        "list_postings": "_list_postings",
        "add_filter": "_add_filter",
        "clear_filters": "_clear_filters",
        "submit": "_submit",
        "approve_candidacy": "_approve_candidacy",
        "reject_candidacy": "_reject_candidacy",
        "accept": "_accept",
        "request_withdrawal": "_request_withdrawal",
        "approve_withdrawal": "_approve_withdrawal",
        "reject_withdrawal": "_reject_withdrawal",
        "delete_candidacy": "_delete_candidacy",
        "report": "_report",
    }

    def __init__(self, container: WorkflowContainer) -> None:
        self._container = container
        self._accounts = container.account_service()
        self._postings = container.posting_service()
        self._orchestrator = container.orchestrator()
        self._refs: dict[str, str] = {}
        self._filters: dict[str, EligibilityFilter] = {}
        self._logger = structlog.get_logger(__name__)

    def register_actors(self, actors: list[dict[str, Any]]) -> None:
        for raw in actors:
            self._accounts.register(parse_actor(raw))

    def run(self, steps: list[ScenarioStep]) -> list[StepOutcome]:
        outcomes: list[StepOutcome] = []
        for index, step in enumerate(steps):
            outcome = self.run_step(index, step)
            outcomes.append(outcome)
            if outcome.ok:
                self._logger.info("workflow.step", index=index, op=step.op, actor=step.actor)
            else:
                self._logger.warning(
                    "workflow.step_failed",
                    index=index,
                    op=step.op,
                    actor=step.actor,
                    error=outcome.error,
                )
        return outcomes

    def run_step(self, index: int, step: ScenarioStep) -> StepOutcome:
        handler: Callable[[ActorRecord | None, dict[str, Any]], Any] = getattr(self, self.OPERATIONS[step.op])
        try:
            actor = self._accounts.get(step.actor) if step.actor else None
            result = handler(actor, step.arguments())
        except WorkflowError as exc:
            return StepOutcome(index=index, op=step.op, actor=step.actor, ok=False, error=exc.to_dict())
        if step.ref and isinstance(result, dict):
            identifier = result.get("candidacy_id") or result.get("posting_id")
            if identifier:
                self._refs[step.ref] = identifier
        return StepOutcome(index=index, op=step.op, actor=step.actor, ok=True, result=result)

    def snapshot(self) -> dict[str, Any]:
        return {
            "actors": [actor.model_dump(mode="json") for actor in self._accounts.all()],
            "postings": [posting.model_dump(mode="json") for posting in self._postings.list_all()],
            "candidacies": [item.model_dump(mode="json") for item in self._orchestrator.list_all()],
            "refs": dict(self._refs),
        }

    # -- helpers ----------------------------------------------------------------

    def _resolve(self, args: dict[str, Any], key: str) -> str:
        if key not in args:
            raise ValidationError(f"Step is missing '{key}'")
        value = str(args[key])
        return self._refs.get(value, value)

    @staticmethod
    def _need_actor(actor: ActorRecord | None, kind: type) -> Any:
        if not isinstance(actor, kind):
            raise ValidationError(f"Step requires a {kind.__name__.lower()} actor")
        return actor

    def _filter_for(self, actor: ActorRecord) -> EligibilityFilter:
        if actor.actor_id not in self._filters:
            self._filters[actor.actor_id] = self._postings.eligibility_for(actor)
        return self._filters[actor.actor_id]

    # -- accounts ---------------------------------------------------------------

    def _approve_organization(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        staff = self._need_actor(actor, Staff)
        return self._accounts.approve_organization(staff, self._resolve(args, "organization")).model_dump(mode="json")

    def _reject_organization(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        staff = self._need_actor(actor, Staff)
        self._accounts.reject_organization(staff, self._resolve(args, "organization"))
        return None

    # -- postings ---------------------------------------------------------------

    def _create_posting(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        organization = self._need_actor(actor, Organization)
        try:
            posting = self._postings.create(
                organization,
                title=args["title"],
                description=args.get("description", ""),
                level=args["level"],
                major=args["major"],
                open_date=args["open_date"],
                close_date=args["close_date"],
                capacity=args["capacity"],
            )
        except KeyError as exc:
            raise ValidationError(f"create_posting is missing {exc.args[0]!r}") from exc
        return posting.model_dump(mode="json")

    def _edit_posting(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        posting_id = self._resolve(args, "posting")
        fields = args.get("fields") or {}
        if not isinstance(fields, dict):
            raise ValidationError("edit_posting requires a 'fields' mapping")
        return self._postings.edit(posting_id, dict(fields), actor=actor).model_dump(mode="json")

    def _delete_posting(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        organization = self._need_actor(actor, Organization)
        self._postings.delete(organization, self._resolve(args, "posting"))
        return None

    def _set_visibility(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        posting_id = self._resolve(args, "posting")
        visible = args.get("visible", True)
        if not isinstance(visible, bool):
            raise ValidationError(f"set_visibility expects a boolean, got {visible!r}")
        return self._postings.set_visibility(posting_id, visible, actor=actor).model_dump(mode="json")

    def _approve_posting(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        return self._postings.approve(self._resolve(args, "posting"), actor=actor).model_dump(mode="json")

    def _reject_posting(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        return self._postings.reject(self._resolve(args, "posting"), actor=actor).model_dump(mode="json")

    def _list_postings(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        if actor is None:
            raise ValidationError("list_postings requires an actor")
        postings = self._postings.list_for(actor, self._filter_for(actor))
        return {"posting_ids": [posting.posting_id for posting in postings]}

    def _add_filter(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        if actor is None:
            raise ValidationError("add_filter requires an actor")
        spec = args.get("filter")
        if not isinstance(spec, dict):
            raise ValidationError("add_filter requires a 'filter' mapping")
        eligibility = self._filter_for(actor)
        eligibility.add(
            build_predicate(
                spec,
                policy=self._orchestrator.policy,
                today_provider=self._container.today_provider(),
            )
        )
        return {"filters": eligibility.describe()}

    def _clear_filters(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        if actor is None:
            raise ValidationError("clear_filters requires an actor")
        eligibility = self._filter_for(actor)
        eligibility.clear()
        return {"filters": eligibility.describe()}

    def _report(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        eligibility = self._filter_for(actor) if actor is not None else None
        report = build_posting_report(
            self._postings.list_all(),
            self._orchestrator.list_all(),
            eligibility,
        )
        return report_to_dict(report)

    # -- candidacies ------------------------------------------------------------

    def _submit(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        applicant = self._need_actor(actor, Applicant)
        return self._orchestrator.submit(applicant, self._resolve(args, "posting")).model_dump(mode="json")

    def _approve_candidacy(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        return self._orchestrator.approve(self._resolve(args, "candidacy"), actor=actor).model_dump(mode="json")

    def _reject_candidacy(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        return self._orchestrator.reject(self._resolve(args, "candidacy"), actor=actor).model_dump(mode="json")

    def _accept(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        return self._orchestrator.accept(self._resolve(args, "candidacy"), actor=actor).model_dump(mode="json")

    def _request_withdrawal(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        candidacy_id = self._resolve(args, "candidacy")
        reason = args.get("reason")
        updated = self._orchestrator.request_withdrawal(
            candidacy_id,
            reason=str(reason) if reason is not None else None,
            actor=actor,
        )
        return updated.model_dump(mode="json")

    def _approve_withdrawal(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        candidacy_id = self._resolve(args, "candidacy")
        return self._orchestrator.approve_withdrawal(candidacy_id, actor=actor).model_dump(mode="json")

    def _reject_withdrawal(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        candidacy_id = self._resolve(args, "candidacy")
        return self._orchestrator.reject_withdrawal(candidacy_id, actor=actor).model_dump(mode="json")

    def _delete_candidacy(self, actor: ActorRecord | None, args: dict[str, Any]) -> Any:
        self._orchestrator.delete(self._resolve(args, "candidacy"), actor=actor)
        return None


class OutputWriter:
    """Persist replay results."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False, default=_json_default))
            handle.write("\n")


class ScenarioPipeline:
    """End-to-end replay: load, run against a fresh engine, write results."""

    def __init__(
        self,
        *,
        settings: dict[str, Any] | None = None,
        loader: ScenarioLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._settings = settings or {}
        self._loader = loader or ScenarioLoader()
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    def run(
        self,
        *,
        scenario_path: Path,
        output_path: Path,
        as_of: str | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> dict[str, Any]:
        scenario = self._loader.load(scenario_path)
        reference_day = _resolve_as_of(as_of, scenario.as_of)
        self._logger.info(
            "scenario.loaded",
            path=str(scenario_path),
            actors=len(scenario.actors),
            steps=len(scenario.steps),
            as_of=reference_day.isoformat() if reference_day else None,
        )

        settings = dict(self._settings)
        if scenario.config:
            settings.update(load_config(scenario.config).to_settings())
        container = create_container(
            settings=settings,
            today_provider=(lambda: reference_day) if reference_day else None,
        )

        runner = ScenarioRunner(container)
        runner.register_actors(scenario.actors)
        outcomes = runner.run(scenario.steps)

        if audit_logger:
            for outcome in outcomes:
                audit_logger.append(
                    {
                        "index": outcome.index,
                        "op": outcome.op,
                        "actor": outcome.actor,
                        "ok": outcome.ok,
                        "error": outcome.error,
                    }
                )

        snapshot = runner.snapshot()
        report = build_posting_report(
            container.posting_service().list_all(),
            container.orchestrator().list_all(),
        )
        payload = {
            "metadata": {
                "scenario": str(scenario_path),
                "as_of": reference_day.isoformat() if reference_day else None,
                "step_count": len(outcomes),
                "failed_steps": [outcome.index for outcome in outcomes if not outcome.ok],
                "timestamp": pendulum.now().to_iso8601_string(),
                "app_version": __version__,
            },
            "steps": [asdict(outcome) for outcome in outcomes],
            "state": snapshot,
            "report": report_to_dict(report),
        }
        self._writer.write(output_path, payload)
        return payload


def _resolve_as_of(as_of: str | None, fallback: date | None) -> date | None:
    if not as_of:
        return fallback
    try:
        return pendulum.parse(as_of).date()
    except (ValueError, ParserError) as exc:
        raise ScenarioLoadError([f"invalid as_of date: {as_of!r}"]) from exc


def _json_default(value):  # type: ignore[override]
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
