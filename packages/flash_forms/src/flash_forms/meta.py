from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from pathlib import Path
from types import MappingProxyType
from typing import Any


class MetaData(MutableMapping[str, Any]):
    """
    Key/value data attached to a form that is never rendered as a field.

    Typical use is tagging a submission with where it came from::

        {{ flash_forms('contact', meta={'campaign': 'spring'}) }}

    ``replace`` merges: keys present in the new values win, other keys stay.
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def all(self) -> dict[str, Any]:
        return dict(self._values)

    def has(self, key: str) -> bool:
        return key in self._values

    def replace(self, values: Mapping[str, Any]) -> None:
        self._values.update(values)

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only copy, detached from later changes to this bag."""
        return MappingProxyType(dict(self._values))


class FormData(Mapping[str, Any]):
    """
    Read-only, cleaned values of one submission.

    ``files`` maps upload field names to the paths the files were stored at.
    """

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        files: Mapping[str, list[Path]] | None = None,
    ) -> None:
        self._values = dict(values or {})
        self._files = {name: list(paths) for name, paths in (files or {}).items()}

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    @property
    def files(self) -> Mapping[str, list[Path]]:
        return MappingProxyType(self._files)

    def all(self) -> dict[str, Any]:
        return dict(self._values)

    def has(self, key: str) -> bool:
        return key in self._values
