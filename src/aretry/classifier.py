r"""Binary exception classification for retry decisions.

This module provides the ``ExceptionClassifier`` that maps a failure to a
retryable / non-retryable verdict using include and exclude type rules
and an optional predicate.
"""

from __future__ import annotations

__all__ = ["ExceptionClassifier"]

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator


class ExceptionClassifier:
    r"""Classify exceptions as retryable or non-retryable.

    Matching uses ``isinstance``, so a rule on a base class covers all of
    its subclasses. The verdict is computed as follows:

    1. If the failure matches any type in ``exclude``: non-retryable.
       Exclude always wins, even if the same type is also included.
    2. Else if the failure matches any type in ``include``, or
       ``retry_if`` returns ``True`` for it: retryable.
    3. Else if ``include`` is empty and no ``retry_if`` is set:
       retryable.
    4. Else: non-retryable.

    If ``traverse_causes`` is set and the failure itself matches no
    rule, the exception chain (``__cause__`` then ``__context__``) is
    walked and the first link matching a rule decides the verdict.

    Args:
        include: Exception types that are retryable.
        exclude: Exception types that are never retryable.
        traverse_causes: Whether to inspect chained exceptions.
        retry_if: Optional predicate marking a failure retryable, for
            decisions a type cannot express (a status code, an error
            code). It acts as an extra include rule.

    Example:
        ```pycon
        >>> from aretry.classifier import ExceptionClassifier
        >>> classifier = ExceptionClassifier(include=(RuntimeError,), exclude=(RecursionError,))
        >>> classifier.classify(RuntimeError("boom"))
        True
        >>> classifier.classify(RecursionError("too deep"))
        False
        >>> classifier.classify(ValueError("not included"))
        False

        ```
    """

    def __init__(
        self,
        include: Iterable[type[BaseException]] = (),
        exclude: Iterable[type[BaseException]] = (),
        *,
        traverse_causes: bool = False,
        retry_if: Callable[[BaseException], bool] | None = None,
    ) -> None:
        self.include: tuple[type[BaseException], ...] = tuple(include)
        self.exclude: tuple[type[BaseException], ...] = tuple(exclude)
        self.traverse_causes = traverse_causes
        self.retry_if = retry_if
        for exc_type in (*self.include, *self.exclude):
            if not (isinstance(exc_type, type) and issubclass(exc_type, BaseException)):
                msg = f"classification rules must be exception types, got {exc_type!r}"
                raise TypeError(msg)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(include={self.include!r}, "
            f"exclude={self.exclude!r}, traverse_causes={self.traverse_causes}, "
            f"retry_if={self.retry_if!r})"
        )

    def __call__(self, failure: BaseException) -> bool:
        return self.classify(failure)

    def classify(self, failure: BaseException) -> bool:
        """Return whether the failure is retryable.

        Args:
            failure: The exception raised by the operation.

        Returns:
            ``True`` if the failure may be retried, ``False`` otherwise.
        """
        if self.traverse_causes:
            for link in _iter_chain(failure):
                verdict = self._match(link)
                if verdict is not None:
                    return verdict
            return not self._has_include_rules()

        verdict = self._match(failure)
        if verdict is None:
            return not self._has_include_rules()
        return verdict

    def _has_include_rules(self) -> bool:
        return bool(self.include) or self.retry_if is not None

    def _match(self, failure: BaseException) -> bool | None:
        """Return the verdict of the first matching rule, or ``None``."""
        if self.exclude and isinstance(failure, self.exclude):
            return False
        if self.include and isinstance(failure, self.include):
            return True
        if self.retry_if is not None and self.retry_if(failure):
            return True
        return None


def _iter_chain(failure: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = failure
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__
