"""
Per-app service objects.

create_app() builds one ImageSearchServices bundle and stores it under
app.extensions['imagesearch']; blueprints reach it via get_services().
"""

import random
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from sources import SourceRegistry, ResilientFetcher, build_default_sources
from .config import AppConfig
from .search.orchestrator import SearchOrchestrator
from .token_codec import TokenCodec

EXTENSION_KEY = 'imagesearch'


@dataclass
class ImageSearchServices:
    config: AppConfig
    fetcher: ResilientFetcher
    registry: SourceRegistry
    codec: TokenCodec
    orchestrator: SearchOrchestrator


def build_services(config: AppConfig, registry: Optional[SourceRegistry] = None,
                   fetcher: Optional[ResilientFetcher] = None,
                   rng: Optional[random.Random] = None) -> ImageSearchServices:
    """Wire fetcher, adapters, codec and orchestrator for one app."""
    fetcher = fetcher or ResilientFetcher()
    registry = registry if registry is not None else build_default_sources(config, fetcher)
    codec = TokenCodec(config.encryption_key)
    orchestrator = SearchOrchestrator(registry.sources, codec=codec, rng=rng)
    return ImageSearchServices(
        config=config,
        fetcher=fetcher,
        registry=registry,
        codec=codec,
        orchestrator=orchestrator,
    )


def get_services() -> ImageSearchServices:
    return current_app.extensions[EXTENSION_KEY]
