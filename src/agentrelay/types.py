"""Core data model: agents, functions, schemas and results."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from .errors import DuplicateFunctionError

if TYPE_CHECKING:
    from .items import RunItem

CONTEXT_VARIABLES_NAME = "context_variables"
DEFAULT_AGENT_NAME = "Agent"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_INSTRUCTIONS = "You are a helpful agent."
UNION_TYPE = "union"

Instructions = Union[str, Callable[[dict[str, Any]], str]]


@dataclass(frozen=True)
class ParameterSchema:
    """Schema for one function parameter (recursive for arrays and objects).

    ``nullable`` admits ``None`` alongside ``type``. A ``type`` of
    ``"union"`` accepts any value matching one of ``variants``.
    """

    type: str
    description: str = ""
    required: bool = False
    items: ParameterSchema | None = None
    properties: Mapping[str, ParameterSchema] | None = None
    enum: tuple[Any, ...] | None = None
    nullable: bool = False
    variants: tuple[ParameterSchema, ...] | None = None

    def __post_init__(self) -> None:
        if self.enum is not None and not isinstance(self.enum, tuple):
            object.__setattr__(self, "enum", tuple(self.enum))
        if self.variants is not None:
            object.__setattr__(self, "variants", tuple(_coerce_schema(item) for item in self.variants))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ParameterSchema:
        """Build a schema from a plain ``{"type": ..., "required": ...}`` mapping."""
        items = data.get("items")
        properties = data.get("properties")
        enum = data.get("enum")
        variants = data.get("variants")
        return cls(
            type=str(data.get("type", UNION_TYPE if variants else "string")),
            description=str(data.get("description", "")),
            required=bool(data.get("required", False)),
            items=_coerce_schema(items) if items is not None else None,
            properties=(
                {key: _coerce_schema(value) for key, value in properties.items()} if properties is not None else None
            ),
            enum=tuple(enum) if enum is not None else None,
            nullable=bool(data.get("nullable", False)),
            variants=tuple(_coerce_schema(item) for item in variants) if variants else None,
        )


def _coerce_schema(value: ParameterSchema | Mapping[str, Any]) -> ParameterSchema:
    if isinstance(value, ParameterSchema):
        return value
    return ParameterSchema.from_dict(value)


@dataclass(frozen=True)
class FunctionDescriptor:
    """Name, description and parameter schema of an agent function."""

    name: str
    description: str = ""
    parameters: Mapping[str, ParameterSchema] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "parameters",
            {key: _coerce_schema(value) for key, value in self.parameters.items()},
        )

    @property
    def declares_context(self) -> bool:
        return CONTEXT_VARIABLES_NAME in self.parameters


FunctionCallable = Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class AgentFunction:
    """A callable tool registered on an agent.

    ``func`` receives one mapping of validated arguments. Set
    ``accepts_context`` (or declare a ``context_variables`` parameter in the
    descriptor) to have the shared context injected under that key.
    """

    name: str
    func: FunctionCallable
    descriptor: FunctionDescriptor
    accepts_context: bool = False

    @property
    def wants_context(self) -> bool:
        return self.accepts_context or self.descriptor.declares_context


@dataclass(frozen=True, eq=False)
class Agent:
    """Named model configuration that can be swapped mid-run.

    Agents compare by identity; a handoff replaces the active agent object
    wholesale.
    """

    name: str = DEFAULT_AGENT_NAME
    model: str = DEFAULT_MODEL
    instructions: Instructions = DEFAULT_INSTRUCTIONS
    functions: Sequence[AgentFunction] = ()
    tool_choice: str | None = None
    parallel_tool_calls: bool = True

    def __post_init__(self) -> None:
        functions = tuple(self.functions)
        seen: set[str] = set()
        for function in functions:
            if function.name in seen:
                raise DuplicateFunctionError(f"Duplicate function name on agent '{self.name}': {function.name}")
            seen.add(function.name)
        object.__setattr__(self, "functions", functions)

    def resolve_instructions(self, context_variables: Mapping[str, Any]) -> str:
        if callable(self.instructions):
            return self.instructions(dict(context_variables))
        return self.instructions


@dataclass
class Result:
    """Normalized tool output.

    ``agent`` set means a handoff; ``context_variables`` are merged into the
    shared context.
    """

    value: str = ""
    agent: Agent | None = None
    context_variables: dict[str, Any] = field(default_factory=dict)


@dataclass
class Response:
    """Terminal aggregate of one run."""

    messages: list[dict[str, Any]] = field(default_factory=list)
    agent: Agent | None = None
    context_variables: dict[str, Any] = field(default_factory=dict)
    items: list[RunItem] = field(default_factory=list)
