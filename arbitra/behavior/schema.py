"""
Variant schema: declaring the closed set of behaviors an agent can adopt.

A behavior kind is a dataclass decorated with ``@variant`` whose fields are
each marked with one of three roles:

    key_field()    - identity. Two suggestions of the same variant with equal
                     keys are "the same behavior instance". Must support
                     equality and hashing.
    input_field()  - tick-local data. Replaced every tick the variant wins.
    state_field()  - scratch space that survives while the identity is
                     unchanged. Must declare a default or default_factory,
                     which is what the field holds after a switch unless the
                     winning suggestion supplied its own value.

Variants are grouped into a ``BehaviorSet``, the closed sum type an advisor
arbitrates over::

    @variant
    class Chase:
        target: AgentId = key_field()
        vec_to_target: Vec2 = input_field()

    @variant
    class Circle:
        target: AgentId = key_field()
        vec_to_target: Vec2 = input_field()
        go_counter_clockwise: bool = state_field(default=False)

    ENEMY_BEHAVIOR = BehaviorSet("EnemyBehavior", [Idle, Chase, Circle])

Schema mistakes (unmarked fields, state without defaults, key types without
equality) raise ``SchemaError`` here, at declaration time, never per tick.
"""

from __future__ import annotations

import copy
import dataclasses
import types
import typing
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAliasType

from arbitra.types import BehaviorInputs, BehaviorKey, BehaviorState

_ROLE = "arbitra.role"
_SPEC_ATTR = "__arbitra_variant__"


class SchemaError(ValueError):
    """Raised when a variant or behavior set is declared incorrectly."""


class FieldRole(Enum):
    KEY = "key"
    INPUT = "input"
    STATE = "state"


def key_field(**kwargs: Any) -> Any:
    """Mark a dataclass field as part of the variant's identity."""
    return dataclasses.field(metadata={_ROLE: FieldRole.KEY}, **kwargs)


def input_field(**kwargs: Any) -> Any:
    """Mark a dataclass field as tick-local input."""
    return dataclasses.field(metadata={_ROLE: FieldRole.INPUT}, **kwargs)


def state_field(
    *,
    default: Any = dataclasses.MISSING,
    default_factory: Callable[[], Any] | Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """Mark a dataclass field as persisted state with a declared default."""
    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        raise SchemaError("state_field() requires a default or default_factory")
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={_ROLE: FieldRole.STATE},
        **kwargs,
    )


@dataclass(frozen=True, slots=True)
class VariantSpec:
    """Static description of one behavior kind, built by ``@variant``."""

    tag: type
    name: str
    key_fields: tuple[str, ...]
    input_fields: tuple[str, ...]
    state_fields: tuple[str, ...]
    state_defaults: tuple[Callable[[], Any], ...]

    def key_of(self, behavior: Any) -> BehaviorKey:
        return tuple(getattr(behavior, name) for name in self.key_fields)

    def inputs_of(self, behavior: Any) -> BehaviorInputs:
        return tuple(getattr(behavior, name) for name in self.input_fields)

    def state_of(self, behavior: Any) -> BehaviorState:
        return tuple(getattr(behavior, name) for name in self.state_fields)

    def default_state(self) -> BehaviorState:
        """Fresh default state values, one factory call per field."""
        return tuple(factory() for factory in self.state_defaults)

    def build(
        self,
        key: Sequence[Any] = (),
        inputs: Sequence[Any] = (),
        state: Sequence[Any] | None = None,
    ) -> Any:
        """Construct an instance from positional key/input/state tuples.

        ``state`` is the optional initializer. When omitted, the declared
        defaults are used.
        """
        if len(key) != len(self.key_fields):
            raise TypeError(
                f"{self.name} expects {len(self.key_fields)} key value(s), "
                f"got {len(key)}"
            )
        if len(inputs) != len(self.input_fields):
            raise TypeError(
                f"{self.name} expects {len(self.input_fields)} input value(s), "
                f"got {len(inputs)}"
            )
        if state is not None and len(state) != len(self.state_fields):
            raise TypeError(
                f"{self.name} expects {len(self.state_fields)} state value(s), "
                f"got {len(state)}"
            )
        kwargs = dict(zip(self.key_fields, key, strict=True))
        kwargs.update(zip(self.input_fields, inputs, strict=True))
        if state is not None:
            kwargs.update(zip(self.state_fields, state, strict=True))
        return self.tag(**kwargs)

    def adopt(self, behavior: Any) -> Any:
        """Copy a winning suggestion so the advisor owns its active instance.

        State fields are deep-copied: the same suggestion object may win on
        several agents, and each agent's state must stay its own.
        """
        adopted = copy.copy(behavior)
        for name in self.state_fields:
            setattr(adopted, name, copy.deepcopy(getattr(behavior, name)))
        return adopted

    def replace_inputs(self, active: Any, winner: Any) -> None:
        """Overwrite ``active``'s input fields with ``winner``'s, in place."""
        for name in self.input_fields:
            setattr(active, name, getattr(winner, name))

    def fields_of(self, behavior: Any) -> dict[str, Any]:
        """All fields by name, in declaration order."""
        return {f.name: getattr(behavior, f.name) for f in dataclasses.fields(self.tag)}


def variant[C: type](cls: C) -> C:
    """Class decorator turning ``cls`` into a behavior variant dataclass.

    Fields are keyword-only so key, input and state fields may appear in any
    order regardless of which ones carry defaults.
    """
    cls = dataclasses.dataclass(kw_only=True, slots=True)(cls)
    spec = _build_spec(cls)
    setattr(cls, _SPEC_ATTR, spec)
    return cls


def spec_of(tag: type) -> VariantSpec:
    """Return the ``VariantSpec`` of a ``@variant`` class.

    Raises:
        TypeError: If ``tag`` was not declared with ``@variant``.
    """
    spec = getattr(tag, _SPEC_ATTR, None)
    if not isinstance(spec, VariantSpec) or spec.tag is not tag:
        raise TypeError(f"{tag!r} is not a behavior variant (missing @variant)")
    return spec


def is_variant(obj: Any) -> bool:
    tag = obj if isinstance(obj, type) else type(obj)
    spec = getattr(tag, _SPEC_ATTR, None)
    return isinstance(spec, VariantSpec) and spec.tag is tag


def _build_spec(cls: type) -> VariantSpec:
    try:
        hints = typing.get_type_hints(cls)
    except NameError as exc:
        raise SchemaError(
            f"{cls.__name__}: cannot resolve field annotations ({exc})"
        ) from exc

    keys: list[str] = []
    inputs: list[str] = []
    states: list[str] = []
    defaults: list[Callable[[], Any]] = []

    for f in dataclasses.fields(cls):
        role = f.metadata.get(_ROLE)
        match role:
            case FieldRole.KEY:
                annotation = hints.get(f.name, Any)
                if not _supports_identity(annotation):
                    raise SchemaError(
                        f"{cls.__name__}.{f.name}: key field type {annotation!r} "
                        "does not support equality and hashing"
                    )
                keys.append(f.name)
            case FieldRole.INPUT:
                inputs.append(f.name)
            case FieldRole.STATE:
                states.append(f.name)
                defaults.append(_default_factory(f))
            case _:
                raise SchemaError(
                    f"{cls.__name__}.{f.name}: field has no role; declare it with "
                    "key_field(), input_field() or state_field()"
                )

    return VariantSpec(
        tag=cls,
        name=cls.__name__,
        key_fields=tuple(keys),
        input_fields=tuple(inputs),
        state_fields=tuple(states),
        state_defaults=tuple(defaults),
    )


def _default_factory(f: dataclasses.Field) -> Callable[[], Any]:
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory
    value = f.default
    return lambda: value


def _supports_identity(annotation: Any) -> bool:
    """Best-effort check that values of ``annotation`` can form a key.

    Plain classes must be hashable (which excludes ``list``, ``dict`` and
    numpy arrays, and classes defining ``__eq__`` without ``__hash__``).
    Unions and tuples are checked member by member; other typing constructs
    are accepted.
    """
    if annotation is Any:
        return True
    if isinstance(annotation, TypeAliasType):
        return _supports_identity(annotation.__value__)
    supertype = getattr(annotation, "__supertype__", None)
    if supertype is not None:
        return _supports_identity(supertype)

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        return all(_supports_identity(arg) for arg in typing.get_args(annotation))
    if origin is tuple:
        return all(
            arg is Ellipsis or _supports_identity(arg)
            for arg in typing.get_args(annotation)
        )
    if origin is not None:
        return _supports_identity(origin)
    if isinstance(annotation, type):
        return annotation.__hash__ is not None
    return True


class BehaviorSet:
    """The closed set of variants one kind of agent arbitrates over."""

    def __init__(self, name: str, variants: Sequence[type]) -> None:
        if not variants:
            raise SchemaError(f"{name}: a behavior set needs at least one variant")

        specs: dict[type, VariantSpec] = {}
        by_name: dict[str, type] = {}
        for tag in variants:
            if not is_variant(tag):
                raise SchemaError(f"{name}: {tag!r} is not declared with @variant")
            spec = spec_of(tag)
            if tag in specs:
                raise SchemaError(f"{name}: variant {spec.name} listed twice")
            if spec.name in by_name:
                raise SchemaError(f"{name}: two variants named {spec.name}")
            specs[tag] = spec
            by_name[spec.name] = tag

        self.name = name
        self._specs = specs
        self._by_name = by_name

    def __contains__(self, tag: object) -> bool:
        return tag in self._specs

    def __iter__(self) -> Iterator[type]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        names = ", ".join(self._by_name)
        return f"BehaviorSet({self.name!r}, [{names}])"

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._by_name)

    def spec_for(self, tag: type) -> VariantSpec:
        """Return the spec of ``tag``.

        Raises:
            TypeError: If ``tag`` is not a member of this set.
        """
        spec = self._specs.get(tag)
        if spec is None:
            raise TypeError(f"{getattr(tag, '__name__', tag)!r} is not in {self!r}")
        return spec

    def tag_named(self, name: str) -> type:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"{self.name} has no variant named {name!r}") from None

    def build(
        self,
        tag: type,
        key: Sequence[Any] = (),
        inputs: Sequence[Any] = (),
        state: Sequence[Any] | None = None,
    ) -> Any:
        """Construct a suggestion instance of ``tag`` from positional tuples."""
        return self.spec_for(tag).build(key, inputs, state)
