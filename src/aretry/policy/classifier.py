r"""Retry policy driven by exception classification."""

from __future__ import annotations

__all__ = ["NON_RETRYABLE", "ClassifierRetryPolicy"]

import logging
from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy
from aretry.policy.simple import SimpleRetryPolicy

if TYPE_CHECKING:
    from aretry.classifier import ExceptionClassifier
    from aretry.context import RetryContext

logger: logging.Logger = logging.getLogger(__name__)

# Set on the context when the last failure was classified non-retryable
NON_RETRYABLE = "non_retryable"


class ClassifierRetryPolicy(BaseRetryPolicy):
    """Permit attempts while the delegate permits them and the last
    failure is retryable.

    A failure classified as non-retryable ends the sequence on the attempt
    that raised it, without consuming further attempts.

    Args:
        classifier: The exception classifier.
        delegate: The count/time condition. Defaults to
            ``SimpleRetryPolicy(max_attempts=3)``.

    Example:
        ```pycon
        >>> from aretry.classifier import ExceptionClassifier
        >>> from aretry.policy import ClassifierRetryPolicy
        >>> policy = ClassifierRetryPolicy(ExceptionClassifier(include=(TimeoutError,)))
        >>> context = policy.open()
        >>> policy.register_attempt(context, TimeoutError("slow"))
        >>> policy.can_retry(context)
        True
        >>> policy.register_attempt(context, KeyError("missing"))
        >>> policy.can_retry(context)
        False

        ```
    """

    def __init__(
        self,
        classifier: ExceptionClassifier,
        delegate: BaseRetryPolicy | None = None,
    ) -> None:
        self.classifier = classifier
        self.delegate: BaseRetryPolicy = delegate if delegate is not None else SimpleRetryPolicy()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(classifier={self.classifier!r}, "
            f"delegate={self.delegate!r})"
        )

    def prepare(self, context: RetryContext) -> None:
        self.delegate.prepare(context)

    def can_retry(self, context: RetryContext) -> bool:
        if context.last_failure is not None and context.get_attribute(NON_RETRYABLE, False):
            return False
        return self.delegate.can_retry(context)

    def on_attempt(self, context: RetryContext, failure: Exception | None) -> None:
        if failure is None:
            context.remove_attribute(NON_RETRYABLE)
        elif not self.classifier.classify(failure):
            logger.debug(f"{type(failure).__name__} is not retryable")
            context.set_attribute(NON_RETRYABLE, True)
        else:
            context.remove_attribute(NON_RETRYABLE)
        self.delegate.on_attempt(context, failure)
