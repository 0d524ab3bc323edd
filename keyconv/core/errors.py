"""Error kinds and the Result type returned by every conversion.

Conversions never raise data errors through the call stack. Each entry
point returns a ``Result`` holding either a value or an ordered tuple of
errors, most specific cause first. Stages wrap the errors of the stage
below with their own message so callers see both what failed and why.

Usage:
    from keyconv.core.errors import catch_errors, wrap_errors

    @catch_errors
    def convert(...):
        result = inner(...)
        if not result.ok:
            raise wrap_errors("Failed to convert key", result.errors)
        return result.value
"""

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generic, Sequence, TypeVar

T = TypeVar("T")


class KeyConversionError(Exception):
    """Base class for key conversion errors."""
    pass


class ConfigurationError(KeyConversionError):
    """Unsupported cipher, format or missing key input."""
    pass


class ValidationError(KeyConversionError):
    """Missing or mistyped field, malformed SSH line, unsupported curve."""
    pass


class ConversionError(KeyConversionError):
    """The crypto primitive rejected the input as a key of the claimed kind."""
    pass


class ErrorChain(KeyConversionError):
    """Carries an ordered list of errors out of a failing stage."""

    def __init__(self, errors: Sequence[KeyConversionError]):
        self.errors = tuple(errors)
        super().__init__(str(self.errors[-1]) if self.errors else "")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a conversion: a value or a non-empty tuple of errors."""
    value: T | None = None
    errors: tuple[KeyConversionError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, errors: Sequence[KeyConversionError]) -> "Result[T]":
        if not errors:
            raise ValueError("A failed result needs at least one error")
        return cls(errors=tuple(errors))

    @property
    def messages(self) -> list[str]:
        """Error messages, most specific first."""
        return [str(e) for e in self.errors]

    def unwrap(self) -> T:
        """Return the value or raise the outermost error."""
        if self.errors:
            raise self.errors[-1]
        return self.value


def wrap_errors(
    message: str,
    errors: Sequence[KeyConversionError],
    kind: type[KeyConversionError] = ConversionError,
) -> ErrorChain:
    """Append a stage error to ``errors`` and return them as an ErrorChain.

    The new error is chained to the previous outermost error so that a
    raised ``Result.unwrap()`` shows the whole history in its traceback.
    """
    wrapper = kind(message)
    if errors:
        wrapper.__cause__ = errors[-1]
    return ErrorChain([*errors, wrapper])


def catch_errors(func: Callable[..., T]) -> Callable[..., Result[T]]:
    """Run ``func`` and capture its outcome as a Result."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Result[T]:
        try:
            return Result.success(func(*args, **kwargs))
        except ErrorChain as e:
            return Result.failure(e.errors)
        except KeyConversionError as e:
            return Result.failure([e])

    return wrapper
