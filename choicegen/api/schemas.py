"""
Pydantic Schemas - the exposed layout of a compiled generator.

These models define the contract between a compiled generator and the
engines that drive it. Choice points keep min/max only when the bound is a
compile-time literal; engines rely on that to tell fixed ranges from ranges
computed at run time.
"""

from enum import Enum
from typing import Any, Optional, Union
from pydantic import BaseModel, Field

from ..rule_compiler.context import ChoicePoint
from ..rule_compiler.emitter import GeneratorDefinition
from ..runtime import Generator


# =============================================================================
# Enums
# =============================================================================

class ChoiceKindName(str, Enum):
    """Choice point kinds."""
    RULE = "rule"
    SEQUENCE = "sequence"
    VALUE = "value"


# =============================================================================
# Models
# =============================================================================

class ChoicePointSchema(BaseModel):
    """A single choice point."""
    id: int = Field(ge=0)
    kind: ChoiceKindName
    rule_name: Optional[str] = None
    datatype: Optional[str] = None
    min: Optional[Union[int, float]] = Field(None, description="Present only for literal bounds")
    max: Optional[Union[int, float]] = Field(None, description="Present only for literal bounds")
    pattern: Optional[str] = None
    literal_range: bool = False

    model_config = {"ser_json_inf_nan": "constants"}


class GeneratorSchema(BaseModel):
    """Everything an engine needs to know about a generator."""
    name: str
    doc: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    choice_points: list[ChoicePointSchema] = Field(default_factory=list)
    rule_name_map: dict[str, str] = Field(default_factory=dict)
    subgenerator_arity: int = 0
    subgenerator_names: list[str] = Field(default_factory=list)

    model_config = {"ser_json_inf_nan": "constants"}

    def choice_point(self, cp_id: int) -> Optional[ChoicePointSchema]:
        for cp in self.choice_points:
            if cp.id == cp_id:
                return cp
        return None


# =============================================================================
# Conversion
# =============================================================================

_JSON_SCALARS = (str, int, float, bool, type(None))


def _jsonable(value: Any) -> Any:
    """Keep JSON-shaped metadata; render anything else with repr."""
    if isinstance(value, _JSON_SCALARS):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return repr(value)


def choice_point_schema(cp: ChoicePoint) -> ChoicePointSchema:
    datatype = cp.datatype
    return ChoicePointSchema(
        id=cp.id,
        kind=ChoiceKindName(cp.kind.value),
        rule_name=cp.rule_name,
        datatype=datatype.name if datatype is not None else None,
        min=cp.min,
        max=cp.max,
        pattern=cp.info.get("pattern"),
        literal_range=cp.has_literal_min and cp.has_literal_max,
    )


def describe_generator(
    source: Union[GeneratorDefinition, Generator, type[Generator]],
) -> GeneratorSchema:
    """
    Describe a compiled generator.

    Accepts a GeneratorDefinition, a compiled generator class, or an
    instance of one.
    """
    if isinstance(source, GeneratorDefinition):
        cls = source.generator_class
    elif isinstance(source, Generator):
        cls = type(source)
    elif isinstance(source, type) and issubclass(source, Generator):
        cls = source
    else:
        raise TypeError(f"Cannot describe {source!r}: not a compiled generator")

    return GeneratorSchema(
        name=cls.name,
        doc=cls.__doc__,
        metadata=_jsonable(dict(cls.meta)),
        choice_points=[
            choice_point_schema(cp)
            for _, cp in sorted(cls.choice_points.items())
        ],
        rule_name_map=dict(cls.rule_names),
        subgenerator_arity=cls.subgen_arity,
        subgenerator_names=list(cls.subgen_names),
    )
