"""Read-only mapping used for dict-valued fields on frozen models.

``ConfigDict(frozen=True)`` blocks attribute assignment but not mutation
of a dict held in a field.  Fields annotated with ``FrozenStrMap`` or
``FrozenHeaderMap`` are stored as a ``FrozenDict`` after validation.
"""

from __future__ import annotations

from typing import Annotated, Any, NoReturn

from pydantic import AfterValidator


class FrozenDict(dict):
    """A ``dict`` whose contents cannot change after construction.

    Still a ``dict`` subclass, so serialization, equality with plain dicts
    and ``httpx`` query params all behave as before.
    """

    __slots__ = ()

    def _readonly(self, *args: Any, **kwargs: Any) -> NoReturn:
        raise TypeError(f"{type(self).__name__} is read-only")

    __setitem__ = _readonly
    __delitem__ = _readonly
    __ior__ = _readonly
    clear = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    update = _readonly

    def __hash__(self) -> int:  # type: ignore[override]
        return hash(frozenset(self.items()))

    def __reduce__(self):
        return (type(self), (dict(self),))

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"


def _freeze(value: dict) -> FrozenDict:
    return value if isinstance(value, FrozenDict) else FrozenDict(value)


def _freeze_headers(value: dict[str, list[str] | tuple[str, ...]]) -> FrozenDict:
    return FrozenDict({name: tuple(values) for name, values in value.items()})


FrozenStrMap = Annotated[dict[str, str], AfterValidator(_freeze)]
FrozenHeaderMap = Annotated[dict[str, tuple[str, ...]], AfterValidator(_freeze_headers)]

EMPTY: FrozenDict = FrozenDict()
