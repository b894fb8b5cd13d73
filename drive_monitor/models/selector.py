"""Selector specification shared by the browser layer and the login flow."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SelectorSpec:
    """
    A named element lookup with ordered fallbacks.

    The first selector is the primary; the remaining ones are tried in order
    when the page renders an alternative but equivalent form. Selectors use
    Playwright syntax, so XPath fallbacks carry the ``xpath=`` prefix.
    """

    name: str
    selectors: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.selectors:
            raise ValueError(f"SelectorSpec '{self.name}' needs at least one selector")

    @property
    def primary(self) -> str:
        return self.selectors[0]

    @property
    def fallbacks(self) -> Tuple[str, ...]:
        return self.selectors[1:]
