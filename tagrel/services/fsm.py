"""Minimal step runner for per-repository release stages.

Handlers take the current state and return either `advance(new_state)` or
`finish(result)`. The state's step key picks the next handler.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from tagrel.core.result import Err, Ok, Result


@dataclass(frozen=True, slots=True)
class Advance[S]:
    state: S


@dataclass(frozen=True, slots=True)
class Finish[R]:
    result: R


@dataclass(frozen=True, slots=True)
class StepError:
    """A state named a step that has no handler."""

    step: str
    message: str


type StepOutcome[S, R] = Advance[S] | Finish[R]
type StepHandler[S, R] = Callable[[S], StepOutcome[S, R]]


def advance[S](state: S) -> Advance[S]:
    return Advance(state=state)


def finish[R](result: R) -> Finish[R]:
    return Finish(result=result)


def run_steps[S, K, R](
    *,
    initial_state: S,
    get_step: Callable[[S], K],
    handlers: Mapping[K, StepHandler[S, R]],
) -> Result[R, StepError]:
    """Run handlers until one of them finishes.

    Returns:
        Ok(result of the finishing handler), or Err(StepError) when a state
        names a step with no handler
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            return Err(StepError(step=str(step), message=f"no handler for step: {step}"))

        outcome = handler(current)
        if isinstance(outcome, Finish):
            return Ok(outcome.result)

        current = outcome.state
