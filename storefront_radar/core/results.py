"""
Step result types.

Every network step and classifier reports one of three outcomes so callers
(and tests) can tell "nothing found" apart from "could not look":

  Ok(value)         the step produced a signal
  Unknown(reason)   the step ran and found nothing usable
  Degraded(reason)  the step failed (timeout, connection error, crash)

Unknown and Degraded both read as "no signal" downstream; only logging and
run statistics treat them differently.
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def value_or(self, default: Any) -> T:
        return self.value


@dataclass(frozen=True)
class Unknown:
    reason: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return False

    def value_or(self, default: Any) -> Any:
        return default


@dataclass(frozen=True)
class Degraded:
    reason: str

    @property
    def is_ok(self) -> bool:
        return False

    def value_or(self, default: Any) -> Any:
        return default


StepResult = Union[Ok[T], Unknown, Degraded]
