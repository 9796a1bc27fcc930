"""Dependency injection container for the workflow engine."""

from __future__ import annotations

from datetime import date
from typing import Callable

from dependency_injector import containers, providers

from .core import (
    AccountService,
    CandidacyOrchestrator,
    KeyedLocks,
    PostingService,
    SequentialIdGenerator,
)
from .core.policy import build_policy, today
from .store import ActorDirectory, CandidacyRepository, PostingRepository


class WorkflowContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    today_provider = providers.Object(today)

    policy = providers.Singleton(build_policy, config.policy)
    locks = providers.Singleton(KeyedLocks)

    posting_repository = providers.Singleton(PostingRepository)
    candidacy_repository = providers.Singleton(CandidacyRepository)
    actor_directory = providers.Singleton(ActorDirectory)

    id_generator = providers.Singleton(
        SequentialIdGenerator,
        today_provider=today_provider,
    )

    orchestrator = providers.Singleton(
        CandidacyOrchestrator,
        postings=posting_repository,
        candidacies=candidacy_repository,
        id_generator=id_generator,
        policy=policy,
        locks=locks,
        today_provider=today_provider,
    )

    posting_service = providers.Singleton(
        PostingService,
        postings=posting_repository,
        candidacies=candidacy_repository,
        orchestrator=orchestrator,
        policy=policy,
        locks=locks,
    )

    account_service = providers.Singleton(AccountService, directory=actor_directory)


def create_container(
    *,
    settings: dict | None = None,
    today_provider: Callable[[], date] | None = None,
) -> WorkflowContainer:
    """Instantiate container with optional overrides."""

    container = WorkflowContainer()

    if today_provider is not None:
        container.today_provider.override(providers.Object(today_provider))

    if settings:
        container.config.from_dict(settings)

    return container
