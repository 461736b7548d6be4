"""
Check-in state machine.

A voter moves from NotVoted to Voted exactly once. Repeated or concurrent
check-ins for the same voter all succeed and all observe the timestamp of
the single call that made the transition.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..exceptions import NotFound, OutOfScope
from ..models import CallerScope, CheckInResult, Voter, utc_now
from .base import BaseService, RosterContext
from .scope import can_see


class CheckInService(BaseService):
    """Resolves voters by identity card within the caller's scope and checks them in."""

    name = "checkin"

    def __init__(self, context: RosterContext, clock: Optional[Callable[[], datetime]] = None):
        super().__init__(context)
        self.clock = clock or utc_now

    def lookup(self, id_card: str, scope: CallerScope) -> Voter:
        """
        Find a voter for the check-in screen.

        Raises:
            NotFound: no voter holds this identity card
            OutOfScope: the voter belongs to an area the caller cannot see
        """
        id_card = (id_card or "").strip()
        if not id_card:
            raise NotFound("Identity card number is empty")

        voter = self.store.get(id_card)
        if voter is None:
            raise NotFound(f"Identity card {id_card} is not on the roster", id_card=id_card)

        if not can_see(scope, voter):
            self.log_warning("Out-of-scope lookup", caller=scope.describe())
            raise OutOfScope(
                f"Identity card {id_card} belongs to another voting area",
                id_card=id_card,
                caller_area=scope.assigned_area,
            )

        return voter

    def check_in(self, id_card: str, scope: CallerScope) -> CheckInResult:
        """
        Mark a voter as having voted.

        Already-voted voters are returned unchanged rather than raising, so a
        retried or double-submitted request can never disturb voted_at.

        Raises:
            NotFound: no voter holds this identity card (or it was deleted meanwhile)
            OutOfScope: the voter belongs to an area the caller cannot see
        """
        voter = self.lookup(id_card, scope)

        if voter.has_voted:
            self.log_debug("Already checked in", voter_id=voter.id)
            return CheckInResult(voter=voter, transitioned=False)

        stored, transitioned = self.store.mark_voted(voter.id, self.clock())
        if transitioned:
            self.log_info("Checked in", voter_id=stored.id, area=stored.voting_area, caller=scope.describe())
        else:
            self.log_debug("Lost check-in race", voter_id=stored.id)

        return CheckInResult(voter=stored, transitioned=transitioned)
