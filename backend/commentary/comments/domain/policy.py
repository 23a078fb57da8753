"""Moderation-state decision for newly submitted comments.

The decision is a pure function of six facts about the submission. Rows are
evaluated top to bottom and the first match wins; ``None`` in a row means the
fact does not matter for that row::

    | anonymous | moderator | require_moderation | moderate_all_anonymous | spam | state      |
    |-----------+-----------+--------------------+------------------------+------+------------|
    |       yes |           |                    |                        |  yes | flagged    |
    |       yes |           |                    |                    yes |   no | unapproved |
    |       yes |           |                    |                     no |   no | approved   |
    |        no |       yes |                    |                        |      | approved   |
    |        no |        no |                    |                        |  yes | flagged    |
    |        no |        no |                yes |                        |   no | unapproved |
    |        no |        no |                 no |                        |   no | approved   |

Anonymous submissions to a domain with ``require_identification`` never reach
the table; callers reject them first.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from commentary.comments.domain.exceptions import NotAuthorised
from commentary.comments.domain.models import ModerationState


@dataclass(frozen=True)
class PolicyFacts:
    """Inputs to the moderation decision."""

    is_anonymous: bool
    require_identification: bool
    is_moderator: bool
    require_moderation: bool
    moderate_all_anonymous: bool
    is_spam: bool


@dataclass(frozen=True)
class PolicyRow:
    anonymous: bool
    moderator: Optional[bool]
    require_moderation: Optional[bool]
    moderate_all_anonymous: Optional[bool]
    spam: Optional[bool]
    state: ModerationState

    def matches(self, facts: PolicyFacts) -> bool:
        checks = (
            (self.anonymous, facts.is_anonymous),
            (self.moderator, facts.is_moderator),
            (self.require_moderation, facts.require_moderation),
            (self.moderate_all_anonymous, facts.moderate_all_anonymous),
            (self.spam, facts.is_spam),
        )
        return all(expected is None or expected == actual for expected, actual in checks)


TRUTH_TABLE: tuple[PolicyRow, ...] = (
    PolicyRow(True, None, None, None, True, ModerationState.FLAGGED),
    PolicyRow(True, None, None, True, False, ModerationState.UNAPPROVED),
    PolicyRow(True, None, None, False, False, ModerationState.APPROVED),
    PolicyRow(False, True, None, None, None, ModerationState.APPROVED),
    PolicyRow(False, False, None, None, True, ModerationState.FLAGGED),
    PolicyRow(False, False, True, None, False, ModerationState.UNAPPROVED),
    PolicyRow(False, False, False, None, False, ModerationState.APPROVED),
)


def decide_state(facts: PolicyFacts) -> ModerationState:
    """Return the initial moderation state for a submission."""

    if facts.is_anonymous and facts.require_identification:
        raise NotAuthorised()
    # Anonymous actors carry no moderator standing.
    if facts.is_anonymous and facts.is_moderator:
        facts = replace(facts, is_moderator=False)
    for row in TRUTH_TABLE:
        if row.matches(facts):
            return row.state
    raise AssertionError(f"moderation table is not total for {facts!r}")  # pragma: no cover


def decide(
    is_anonymous: bool,
    require_identification: bool,
    is_moderator: bool,
    require_moderation: bool,
    moderate_all_anonymous: bool,
    is_spam: bool,
) -> ModerationState:
    return decide_state(
        PolicyFacts(
            is_anonymous=is_anonymous,
            require_identification=require_identification,
            is_moderator=is_moderator,
            require_moderation=require_moderation,
            moderate_all_anonymous=moderate_all_anonymous,
            is_spam=is_spam,
        )
    )
