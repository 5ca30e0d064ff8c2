"""
Lifecycle of a cache proxy.

    Uninstalled -> Installing -> Installed -> Activating -> Serving
                       |
                       +-- seeding failed --> Uninstalled

Each state knows the generation it works on and produces the next state
through `next()`. The proxy performs the I/O that a transition requires
(seeding, sweeping) and feeds the outcome back into the state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Union


@dataclass
class LifecycleState(ABC):
    generation: str

    @abstractmethod
    def next(self, *args: Any, **kwargs: Any) -> Union["LifecycleState", None]:
        raise NotImplementedError("Subclasses must implement this method")


@dataclass
class Uninstalled(LifecycleState):
    def next(self) -> Installing:
        return Installing(generation=self.generation)


@dataclass
class Installing(LifecycleState):
    def next(self, seeded: bool) -> Union[Installed, Uninstalled]:
        if seeded:
            return Installed(generation=self.generation)
        return Uninstalled(generation=self.generation)


@dataclass
class Installed(LifecycleState):
    def next(self) -> Activating:
        return Activating(generation=self.generation)


@dataclass
class Activating(LifecycleState):
    def next(self) -> Serving:
        return Serving(generation=self.generation)


@dataclass
class Serving(LifecycleState):
    """
    The proxy controls its clients and answers requests from `generation`.
    """

    def next(self) -> None:
        return None


AnyLifecycleState = Union[Uninstalled, Installing, Installed, Activating, Serving]
