"""
Process bootstrap: logging and the default schema registry.

Usage:
    from fhirmodel.main import configure_logging, get_registry

    configure_logging()
    registry = get_registry()   # built-ins + FHIR_SCHEMA_DIR, frozen
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from fhirmodel.config import settings
from fhirmodel.schemas.definitions import BUILTIN_DEFINITIONS
from fhirmodel.schemas.loader import read_definition_dir
from fhirmodel.services.registry import SchemaRegistry

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(levelname)s | %(name)s | %(message)s",
    )
    logger.info("Logging configured (environment=%s)", settings.ENVIRONMENT)


def build_registry(schema_dir: str | Path | None = None) -> SchemaRegistry:
    """Load the built-in definitions plus any ``*.json`` documents in *schema_dir*."""
    registry = SchemaRegistry()
    registry.load_definitions(BUILTIN_DEFINITIONS)
    directory = schema_dir if schema_dir is not None else settings.FHIR_SCHEMA_DIR
    if directory:
        registry.load_definitions(read_definition_dir(directory))
    registry.freeze()
    return registry


@lru_cache(maxsize=1)
def get_registry() -> SchemaRegistry:
    """Process-wide registry, built on first use and shared read-only afterwards."""
    return build_registry()
