"""Collect errors as problems and keep going."""

from __future__ import annotations

from collections.abc import Iterator


class ProblemList:
    """An ordered list of problems noted while work carries on.

    A function that would normally stop at the first error can note it
    here and continue. The caller decides what to do with the problems.
    """

    def __init__(self) -> None:
        self._errors: list[Exception] = []

    def add(self, message: str, *args: object) -> ProblemList:
        """Note a problem, formatting ``message`` %-style with ``args``."""
        text = message % args if args else message
        self._errors.append(Exception(text))
        return self

    def errors(self) -> list[Exception]:
        """Return all problems added so far, oldest first."""
        return list(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __iter__(self) -> Iterator[Exception]:
        return iter(list(self._errors))