"""Risk classifier — hot path, runs every rule against every polled socket."""

from __future__ import annotations

from collections.abc import Sequence

from netwatch.capture.base import RawConnection
from netwatch.errors import ClassificationError
from netwatch.risk.models import RiskLevel, RiskProfile, Rule
from netwatch.risk.rules import build_rules


class RiskClassifier:
    """Maps a raw connection to a risk level and the reasons behind it.

    Every rule is evaluated (no first-match short circuit): the level is the
    highest floor any fired rule requested, and the reasons are those of every
    fired rule in declaration order. Identical input always yields identical
    output.
    """

    def __init__(self, rules: Sequence[Rule] | None = None) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules) if rules is not None else build_rules()

    @classmethod
    def from_profile(cls, profile: RiskProfile) -> RiskClassifier:
        return cls(build_rules(profile))

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def classify(self, conn: RawConnection) -> tuple[RiskLevel, tuple[str, ...]]:
        """Return ``(risk, reasons)`` for ``conn``.

        Raises ClassificationError if a rule itself raises; that is a defect
        in the rule, not something callers are expected to recover from.
        """
        floors: list[RiskLevel] = []
        reasons: list[str] = []
        for rule in self._rules:
            try:
                fired = rule.predicate(conn)
                reason = rule.explain(conn) if fired else ""
            except Exception as exc:
                raise ClassificationError(rule.name, exc) from exc
            if not fired:
                continue
            reasons.append(reason)
            floors.append(rule.floor)
        return RiskLevel.max_of(floors), tuple(reasons)
