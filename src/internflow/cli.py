"""Typer CLI entrypoint for scenario replay."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError as PydanticValidationError

from .config import ConfigManager
from .logging import configure_logging
from .scenario import AuditLogger, ScenarioLoadError, ScenarioPipeline

app = typer.Typer(help="Internship posting and candidacy workflow CLI.")


@app.command()
def run(
    scenario: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Scenario YAML/JSON path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    as_of: Optional[str] = typer.Option(None, help="Reference date (ISO) used as 'today'."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Replay a workflow scenario against a fresh in-memory engine."""
    settings: dict[str, Any] = {}
    if config:
        try:
            app_config = ConfigManager.from_file(config)
        except PydanticValidationError as exc:
            raise typer.BadParameter(f"Invalid config: {exc}", param_name="config") from exc
        settings = app_config.to_settings()
        if app_config.logging.level:
            log_level = app_config.logging.level

    configure_logging(log_level)

    pipeline = ScenarioPipeline(settings=settings)
    audit_logger = AuditLogger(audit_log) if audit_log else None

    try:
        payload = pipeline.run(
            scenario_path=scenario,
            output_path=output,
            as_of=as_of,
            audit_logger=audit_logger,
        )
    except ScenarioLoadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    failed = payload["metadata"]["failed_steps"]
    typer.echo(
        f"Replayed {payload['metadata']['step_count']} steps ({len(failed)} failed). Results saved to {output}."
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
