from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from .cognitive_core import DEFAULT_DISPLAY_S, DEFAULT_INTERVAL_S, DEFAULT_N
from .pacing import MIN_INTERVAL_S, PacingMode
from .sequence import RoundMode, resolve_weights, round_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    n: int = DEFAULT_N
    round_count: int = 20 + DEFAULT_N * DEFAULT_N
    use_center_cell: bool = True
    variable_mode: bool = False
    # Relative weights for lags 1..n; only used in variable mode.
    variable_weights: tuple[float, ...] = field(default_factory=tuple)
    base_interval_s: float = DEFAULT_INTERVAL_S
    display_s: float = DEFAULT_DISPLAY_S
    pacing_mode: PacingMode = PacingMode.STANDARD
    show_feedback: bool = False

    def validate(self) -> None:
        if self.n < 1:
            raise ValueError("n must be >= 1")
        if self.round_count < 1:
            raise ValueError("round_count must be >= 1")
        if self.base_interval_s < MIN_INTERVAL_S:
            raise ValueError(f"base_interval_s must be >= {MIN_INTERVAL_S}")
        if self.display_s <= 0.0:
            raise ValueError("display_s must be > 0")
        PacingMode(self.pacing_mode)

    def lag_weights(self) -> list[float]:
        """Weights actually used for generation, after the uniform fallback."""

        weights = resolve_weights(self.n, self.variable_weights)
        if self.variable_mode and len(self.variable_weights) != self.n:
            logger.debug(
                "got %d variable weights for n=%d; using uniform weights",
                len(self.variable_weights),
                self.n,
            )
        return weights

    @classmethod
    def from_round_mode(
        cls,
        *,
        n: int = DEFAULT_N,
        round_mode: RoundMode | str = RoundMode.STANDARD,
        custom_rounds: int = 0,
        **kwargs: Any,
    ) -> SessionConfig:
        return cls(n=n, round_count=round_count(n, round_mode, custom_rounds), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["variable_weights"] = list(self.variable_weights)
        out["pacing_mode"] = PacingMode(self.pacing_mode).value
        return out

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> SessionConfig:
        """Build from a saved settings mapping; unknown keys are ignored."""

        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {k: v for k, v in raw.items() if k in known}
        if "variable_weights" in kwargs:
            kwargs["variable_weights"] = tuple(float(w) for w in kwargs["variable_weights"] or ())
        if "pacing_mode" in kwargs:
            kwargs["pacing_mode"] = PacingMode(kwargs["pacing_mode"])
        for key in ("n", "round_count"):
            if key in kwargs:
                kwargs[key] = int(kwargs[key])
        for key in ("base_interval_s", "display_s"):
            if key in kwargs:
                kwargs[key] = float(kwargs[key])
        return cls(**kwargs)
