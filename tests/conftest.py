"""
Shared pytest fixtures for activation engine tests.

Provides fixtures for:
- Synthetic fact providers (types, properties, components, capabilities)
- Snapshot views bound to a phase
- Fresh condition registries
- Temporary YAML documents
"""

import pytest
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
import yaml

from src.autoconfigure.facts import ComponentDescriptor, StaticFactProvider
from src.autoconfigure.modules import Phase
from src.autoconfigure.registry import ConditionRegistry
from src.autoconfigure.snapshot import FactSnapshot


# =============================================================================
# Fact Fixtures
# =============================================================================

@pytest.fixture
def make_provider():
    """Factory for StaticFactProvider with synthetic facts."""
    def _create(
        types: Iterable[str] = (),
        properties: Optional[Dict[str, Any]] = None,
        components: Iterable[ComponentDescriptor] = (),
        capabilities: Iterable[str] = (),
    ) -> StaticFactProvider:
        return StaticFactProvider(
            types=types,
            properties=properties,
            components=components,
            capabilities=capabilities,
        )
    return _create


@pytest.fixture
def make_view(make_provider):
    """Factory for a SnapshotView over a fresh snapshot."""
    def _create(phase: Phase = Phase.DEFINITION, **facts: Any):
        return FactSnapshot(make_provider(**facts)).view(phase)
    return _create


@pytest.fixture
def empty_view(make_view):
    return make_view()


# =============================================================================
# Registry Fixtures
# =============================================================================

@pytest.fixture
def test_registry():
    """Fresh condition registry for each test."""
    return ConditionRegistry("test")


# =============================================================================
# YAML Fixtures
# =============================================================================

@pytest.fixture
def write_yaml(tmp_path: Path):
    """Write a dict (or raw text) to a YAML file under tmp_path."""
    def _write(name: str, content: Any) -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(content, sort_keys=False), encoding="utf-8")
        return path
    return _write
