"""Application bootstrap wiring ports, adapters, and services."""

from __future__ import annotations

from dataclasses import dataclass

from csindex.app import IndexService
from csindex.app.adapters import FileSystemWalkerAdapter, SQLiteIndexEngine
from csindex.app.ports import IndexEnginePort, SourceDiscoveryPort
from csindex.config import IndexerConfig, Settings, get_settings


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates wired services and adapters for the CLI layer."""

    settings: Settings
    config: IndexerConfig
    engine: IndexEnginePort
    discovery: SourceDiscoveryPort
    index_service: IndexService


def bootstrap_application(
    config: IndexerConfig, settings: Settings | None = None
) -> ApplicationContainer:
    """Instantiate adapters and services for CLI consumption."""

    active_settings = settings or get_settings()

    engine = SQLiteIndexEngine.from_config(config)
    discovery = FileSystemWalkerAdapter()

    index_service = IndexService(
        config=config,
        engine=engine,
        discovery=discovery,
    )

    return ApplicationContainer(
        settings=active_settings,
        config=config,
        engine=engine,
        discovery=discovery,
        index_service=index_service,
    )
