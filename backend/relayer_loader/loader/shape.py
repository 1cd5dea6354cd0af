"""Structural validation of the relayer SDK capability object.

The SDK bundle registers a plain object in the page namespace. Downstream code
only relies on three members plus an optional initialization flag, so the
check is a field-by-field predicate rather than an isinstance test. Members
may be mapping keys (a dict mirroring a JS object) or attributes (a module,
SimpleNamespace or class instance).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from relayer_loader.loader.trace import TraceSink, emit_trace

_MISSING = object()
_SCALARS = (bool, int, float, complex, str, bytes, bytearray)


class FieldKind(str, enum.Enum):
    function = 'function'
    object = 'object'
    boolean = 'boolean'


class FieldState(str, enum.Enum):
    ok = 'ok'
    missing = 'missing'
    wrong_type = 'wrong_type'


@dataclass(frozen=True, slots=True)
class CapabilityShape:
    factory: str = 'initSDK'
    instance: str = 'createInstance'
    config: str = 'SepoliaConfig'
    initialized: str = '__initialized__'

    def required(self) -> tuple[tuple[str, FieldKind], ...]:
        return (
            (self.factory, FieldKind.function),
            (self.instance, FieldKind.function),
            (self.config, FieldKind.object),
        )


DEFAULT_SHAPE = CapabilityShape()


def get_member(obj: Any, name: str) -> Any:
    """Return the named member of ``obj`` or the module-private missing sentinel."""
    if isinstance(obj, Mapping):
        return obj.get(name, _MISSING)
    return getattr(obj, name, _MISSING)


def is_object_value(value: Any) -> bool:
    if value is None or value is _MISSING:
        return False
    if isinstance(value, _SCALARS):
        return False
    return not callable(value)


def field_state(obj: Any, name: str, kind: FieldKind) -> FieldState:
    """Classify one member; a present ``None`` is only a value for boolean flags."""
    value = get_member(obj, name)
    if value is _MISSING:
        return FieldState.missing
    if kind is FieldKind.boolean:
        return FieldState.ok if isinstance(value, bool) else FieldState.wrong_type
    if value is None:
        return FieldState.missing
    if kind is FieldKind.function:
        return FieldState.ok if callable(value) else FieldState.wrong_type
    return FieldState.ok if is_object_value(value) else FieldState.wrong_type


def check_capability(
    value: Any,
    trace: Optional[TraceSink] = None,
    *,
    shape: CapabilityShape = DEFAULT_SHAPE,
) -> bool:
    """Return True iff ``value`` satisfies the capability shape.

    Stops at the first failing field and reports it to ``trace``.
    """
    if value is None or value is _MISSING:
        emit_trace(trace, "relayerSDK is missing")
        return False
    if isinstance(value, _SCALARS) or callable(value):
        emit_trace(trace, f"relayerSDK is not an object (got {type(value).__name__})")
        return False

    for name, kind in shape.required():
        state = field_state(value, name, kind)
        if state is FieldState.missing:
            emit_trace(trace, f"relayerSDK.{name} is missing")
            return False
        if state is FieldState.wrong_type:
            emit_trace(trace, f"relayerSDK.{name} has the wrong type (expected {kind.value})")
            return False

    if field_state(value, shape.initialized, FieldKind.boolean) is FieldState.wrong_type:
        emit_trace(trace, f"relayerSDK.{shape.initialized} is not a boolean")
        return False
    return True


def check_namespace(
    namespace: Any,
    key: str,
    trace: Optional[TraceSink] = None,
    *,
    shape: CapabilityShape = DEFAULT_SHAPE,
) -> bool:
    """Apply check_capability to ``namespace[key]``, reporting an absent slot first."""
    if namespace is None:
        emit_trace(trace, "page namespace is unavailable")
        return False
    if not isinstance(namespace, Mapping):
        emit_trace(trace, "page namespace is not a mapping")
        return False
    if key not in namespace:
        emit_trace(trace, f"page namespace does not contain {key!r}")
        return False
    return check_capability(namespace[key], trace, shape=shape)
