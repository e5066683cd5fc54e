from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .cognitive_core import Modality, round_half_up

logger = logging.getLogger(__name__)


class Outcome(StrEnum):
    HIT = "hit"
    MISS = "miss"
    FALSE_ALARM = "false_alarm"
    CORRECT_REJECTION = "correct_rejection"


# A late press can only ever turn a no-press outcome into its pressed counterpart.
_LATE_PRESS: dict[Outcome, Outcome] = {
    Outcome.MISS: Outcome.HIT,
    Outcome.CORRECT_REJECTION: Outcome.FALSE_ALARM,
}


def classify(*, is_target: bool, was_pressed: bool) -> Outcome:
    if is_target:
        return Outcome.HIT if was_pressed else Outcome.MISS
    return Outcome.FALSE_ALARM if was_pressed else Outcome.CORRECT_REJECTION


def accuracy(hits: int, misses: int, false_alarms: int) -> float:
    """Percent accuracy in [0, 100], one decimal.

    False alarms are subtracted from the target-normalised error rate, the same
    as misses. With no targets the session is perfect unless something was
    pressed.
    """

    total_targets = hits + misses
    errors = misses + false_alarms
    if total_targets == 0 and false_alarms == 0:
        return 100.0
    if total_targets == 0:
        return 0.0
    score = 1.0 - (errors / total_targets)
    return max(0.0, round_half_up(score * 100.0, 1))


@dataclass(slots=True)
class ModalityScore:
    hits: int = 0
    misses: int = 0
    false_alarms: int = 0
    correct_rejections: int = 0

    def bump(self, outcome: Outcome, delta: int = 1) -> None:
        if outcome is Outcome.HIT:
            self.hits += delta
        elif outcome is Outcome.MISS:
            self.misses += delta
        elif outcome is Outcome.FALSE_ALARM:
            self.false_alarms += delta
        else:
            self.correct_rejections += delta

    def accuracy(self) -> float:
        return accuracy(self.hits, self.misses, self.false_alarms)

    def copy(self) -> ModalityScore:
        return ModalityScore(
            hits=self.hits,
            misses=self.misses,
            false_alarms=self.false_alarms,
            correct_rejections=self.correct_rejections,
        )


@dataclass(slots=True)
class TrialCommit:
    trial_index: int
    modality: Modality
    outcome: Outcome
    corrected: bool = False


class SignalScorer:
    """Per-modality signal-detection counts.

    Each resolved trial leaves one ``TrialCommit`` per modality. The grace
    period corrector may rewrite a commit once; a corrected commit is final.
    """

    def __init__(self) -> None:
        self._scores: dict[Modality, ModalityScore] = {m: ModalityScore() for m in Modality}
        self._commits: dict[tuple[int, Modality], TrialCommit] = {}

    def reset(self) -> None:
        for score in self._scores.values():
            score.hits = score.misses = score.false_alarms = score.correct_rejections = 0
        self._commits.clear()

    def score(self, modality: Modality) -> ModalityScore:
        return self._scores[Modality(modality)]

    @property
    def spatial(self) -> ModalityScore:
        return self._scores[Modality.SPATIAL]

    @property
    def audio(self) -> ModalityScore:
        return self._scores[Modality.AUDIO]

    def record_outcome(
        self,
        modality: Modality,
        is_target: bool,
        was_pressed: bool,
        *,
        trial_index: int | None = None,
    ) -> Outcome:
        modality = Modality(modality)
        outcome = classify(is_target=is_target, was_pressed=was_pressed)
        if trial_index is not None:
            key = (int(trial_index), modality)
            if key in self._commits:
                raise ValueError(f"trial {trial_index} already committed for {modality.value}")
            self._commits[key] = TrialCommit(trial_index=int(trial_index), modality=modality, outcome=outcome)
        self._scores[modality].bump(outcome)
        return outcome

    def commit_for(self, trial_index: int, modality: Modality) -> TrialCommit | None:
        return self._commits.get((int(trial_index), Modality(modality)))

    def correct_late_press(self, trial_index: int, modality: Modality) -> Outcome | None:
        """Re-score a committed trial as if the press had landed in time.

        Returns the new outcome, or None when there is nothing to correct
        (no commit, already corrected, or the trial was already pressed).
        """

        commit = self.commit_for(trial_index, modality)
        if commit is None or commit.corrected:
            return None
        replacement = _LATE_PRESS.get(commit.outcome)
        if replacement is None:
            return None

        score = self._scores[commit.modality]
        score.bump(commit.outcome, -1)
        score.bump(replacement)
        logger.debug(
            "late press on trial %d (%s): %s -> %s",
            commit.trial_index,
            commit.modality.value,
            commit.outcome.value,
            replacement.value,
        )
        commit.outcome = replacement
        commit.corrected = True
        return replacement

    def totals(self) -> ModalityScore:
        out = ModalityScore()
        for score in self._scores.values():
            out.hits += score.hits
            out.misses += score.misses
            out.false_alarms += score.false_alarms
            out.correct_rejections += score.correct_rejections
        return out

    def combined_accuracy(self) -> float:
        t = self.totals()
        return accuracy(t.hits, t.misses, t.false_alarms)

    def commits(self) -> list[TrialCommit]:
        return sorted(self._commits.values(), key=lambda c: (c.trial_index, c.modality.value))
