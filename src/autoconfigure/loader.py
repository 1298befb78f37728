"""
Catalog Loader for module catalogs and fact documents.

Loads YAML documents, validates their shape with pydantic models and
turns them into ModuleDescriptors and a StaticFactProvider.

Catalog document:

    custom_conditions:
      pooled_or_explicit:
        description: Pooled vendor available or configured explicitly
        expression:
          any_of:
            - property: datasource.type
            - pooled_datasource_available
    modules:
      - id: app.reporting_datasource
        group: datasource
        precedence: -10
        provides: [dataSource]
        provided_type: javax.sql.DataSource
        conditions:
          - type_available: javax.sql.DataSource
          - custom:pooled_or_explicit

Facts document:

    types: [javax.sql.DataSource, org.h2.Driver]
    properties:
      datasource.url: jdbc:h2:mem:test
    components:
      - name: dataSource
        type: javax.sql.DataSource
        primary: true
    capabilities: [jndi]
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union, TYPE_CHECKING
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.autoconfigure.errors import (
    CatalogLoadError,
    CatalogValidationError,
    ExpressionParseError,
    UnknownConditionError,
)
from src.autoconfigure.expression_parser import ConditionExpressionParser, scalar_text
from src.autoconfigure.facts import ComponentDescriptor, StaticFactProvider
from src.autoconfigure.modules import ModuleDescriptor, Phase
from src.settings import settings

if TYPE_CHECKING:
    from src.autoconfigure.registry import ConditionRegistry

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)

Scalar = Union[str, int, float, bool, None]


# =============================================================================
# Document schemas
# =============================================================================

class ComponentModel(BaseModel):
    """A pre-existing component."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="Declared type of the component")
    extra_types: List[str] = Field(default_factory=list)
    primary: bool = False
    declared: bool = True
    instantiated: bool = False


class FactsDocument(BaseModel):
    """Environment facts for one resolution run."""
    model_config = ConfigDict(extra="forbid")

    types: List[str] = Field(default_factory=list)
    properties: Dict[str, Scalar] = Field(default_factory=dict)
    components: List[ComponentModel] = Field(default_factory=list)
    capabilities: List[str] = Field(default_factory=list)

    @field_validator("components")
    @classmethod
    def unique_component_names(cls, components: List[ComponentModel]) -> List[ComponentModel]:
        seen = set()
        for component in components:
            if component.name in seen:
                raise ValueError(f"duplicate component name '{component.name}'")
            seen.add(component.name)
        return components


class ModuleModel(BaseModel):
    """One candidate module; conditions are parsed separately."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    conditions: List[Any] = Field(default_factory=list)
    precedence: Optional[int] = None
    phase: Phase = Phase.DEFINITION
    group: Optional[str] = None
    provides: List[str] = Field(default_factory=list)
    provided_type: Optional[str] = None
    required: bool = False
    runs_after: List[str] = Field(default_factory=list)
    runs_before: List[str] = Field(default_factory=list)
    description: str = ""


class CatalogDocument(BaseModel):
    """A module catalog."""
    model_config = ConfigDict(extra="forbid")

    custom_conditions: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    modules: List[ModuleModel] = Field(default_factory=list)

    @field_validator("modules")
    @classmethod
    def unique_module_ids(cls, modules: List[ModuleModel]) -> List[ModuleModel]:
        seen = set()
        for module in modules:
            if module.id in seen:
                raise ValueError(f"duplicate module id '{module.id}'")
            seen.add(module.id)
        return modules


# =============================================================================
# Loading
# =============================================================================

def read_yaml(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML mapping from disk.

    Raises:
        CatalogLoadError: If the file is missing, unparsable or not a mapping
    """
    path = Path(file_path)
    if not path.exists():
        raise CatalogLoadError(str(path), "File not found")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CatalogLoadError(str(path), f"YAML parse error: {e}") from e
    except OSError as e:
        raise CatalogLoadError(str(path), str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CatalogLoadError(str(path), f"expected a mapping, got {type(data).__name__}")
    return data


def _validate(model: Type[TModel], data: Dict[str, Any], source: Optional[str]) -> TModel:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        raise CatalogValidationError(errors, source) from e


def facts_from_dict(data: Dict[str, Any], source: Optional[str] = None) -> StaticFactProvider:
    """Build a fact provider from a facts document."""
    document = _validate(FactsDocument, data, source)
    components = [
        ComponentDescriptor(
            name=c.name,
            type_name=c.type,
            extra_types=tuple(c.extra_types),
            primary=c.primary,
            declared=c.declared,
            instantiated=c.instantiated,
        )
        for c in document.components
    ]
    properties = {
        key: None if value is None else scalar_text(value)
        for key, value in document.properties.items()
    }
    provider = StaticFactProvider(
        types=document.types,
        properties=properties,
        components=components,
        capabilities=document.capabilities,
    )
    logger.debug("Loaded facts from %s: %r", source or "<dict>", provider)
    return provider


def load_facts(file_path: Union[str, Path]) -> StaticFactProvider:
    return facts_from_dict(read_yaml(file_path), source=str(file_path))


def catalog_from_dict(
    data: Dict[str, Any],
    registry: Optional["ConditionRegistry"] = None,
    source: Optional[str] = None,
    default_precedence: Optional[int] = None,
) -> List[ModuleDescriptor]:
    """
    Build module descriptors from a catalog document.

    Args:
        data: Parsed catalog document
        registry: Registry Named references must exist in
        source: Name used in error messages
        default_precedence: Precedence for modules that declare none.
            Defaults to activation.default_precedence.

    Raises:
        CatalogValidationError: With every schema, expression and
            descriptor error found in the document
    """
    document = _validate(CatalogDocument, data, source)
    if default_precedence is None:
        default_precedence = settings.get_nested("activation.default_precedence", 0)

    parser = ConditionExpressionParser(registry, document.custom_conditions)
    errors: List[str] = []
    for name, problems in parser.validate_custom_conditions().items():
        errors.extend(f"custom_conditions.{name}: {p}" for p in problems)

    descriptors: List[ModuleDescriptor] = []
    for module in document.modules:
        try:
            conditions = parser.parse_all(module.conditions, source_name=module.id)
        except (ExpressionParseError, UnknownConditionError) as e:
            errors.append(f"modules.{module.id}: {e}")
            continue

        descriptor = ModuleDescriptor(
            id=module.id,
            conditions=tuple(conditions),
            precedence=default_precedence if module.precedence is None else module.precedence,
            phase=module.phase,
            group=module.group,
            provided_names=module.provides,
            provided_type=module.provided_type,
            required=module.required,
            runs_after=module.runs_after,
            runs_before=module.runs_before,
            description=module.description,
        )
        problems = descriptor.validate()
        if problems:
            errors.extend(f"modules.{module.id}: {p}" for p in problems)
            continue
        descriptors.append(descriptor)

    if errors:
        raise CatalogValidationError(errors, source)

    logger.info("Loaded %s modules from %s", len(descriptors), source or "<dict>")
    return descriptors


def load_catalog(
    file_path: Union[str, Path],
    registry: Optional["ConditionRegistry"] = None,
    default_precedence: Optional[int] = None,
) -> List[ModuleDescriptor]:
    return catalog_from_dict(
        read_yaml(file_path),
        registry=registry,
        source=str(file_path),
        default_precedence=default_precedence,
    )


__all__ = [
    "ComponentModel",
    "FactsDocument",
    "ModuleModel",
    "CatalogDocument",
    "read_yaml",
    "facts_from_dict",
    "load_facts",
    "catalog_from_dict",
    "load_catalog",
]
