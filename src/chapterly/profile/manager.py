"""User profile: daily reading goal and onboarding state."""

import logging
from typing import Optional

from ..config import MAX_DAILY_GOAL, MIN_DAILY_GOAL
from ..db.mapping import profile_from_record
from ..db.schemas import UserProfile
from ..db.store import RemoteStore
from ..errors import ConstraintViolation, InvalidGoal, NotSignedIn, PersistenceError

logger = logging.getLogger(__name__)

COLLECTION = "user_profiles"

DEFAULT_DAILY_GOAL = 30


def validate_goal(minutes: int) -> int:
    """Check a daily goal is within the allowed bounds.

    Raises:
        InvalidGoal: If outside [MIN_DAILY_GOAL, MAX_DAILY_GOAL]
    """
    if not MIN_DAILY_GOAL <= minutes <= MAX_DAILY_GOAL:
        raise InvalidGoal(
            f"Daily goal must be between {MIN_DAILY_GOAL} and {MAX_DAILY_GOAL} minutes",
            details={"minutes": minutes},
        )
    return minutes


class ProfileManager:
    """Reads and updates the signed-in user's profile."""

    def __init__(
        self,
        store: RemoteStore,
        user_id: Optional[str],
        default_goal: int = DEFAULT_DAILY_GOAL,
    ):
        self.store = store
        self.user_id = user_id
        self.default_goal = default_goal
        self._profile: Optional[UserProfile] = None

    def _require_user(self) -> str:
        if not self.user_id:
            raise NotSignedIn("User not authenticated")
        return self.user_id

    def get_profile(self) -> UserProfile:
        """Get the profile, creating a default one on first use."""
        user_id = self._require_user()
        if self._profile is not None:
            return self._profile

        rows = self.store.query(COLLECTION, {"id": user_id})
        if rows:
            self._profile = profile_from_record(rows[0])
        else:
            row = self.store.insert(COLLECTION, {
                "id": user_id,
                "daily_goal_minutes": self.default_goal,
                "onboarding_completed": False,
            })
            logger.info(f"Created profile for {user_id}")
            self._profile = profile_from_record(row)
        return self._profile

    @property
    def daily_goal(self) -> int:
        """Current daily goal in minutes."""
        return self.get_profile().daily_goal_minutes

    def set_daily_goal(self, minutes: int) -> UserProfile:
        """Change the daily goal.

        Past daily records keep the goal-met flag they were written with.

        Raises:
            InvalidGoal: If outside the allowed bounds
        """
        validate_goal(minutes)
        return self._update({"daily_goal_minutes": minutes})

    def complete_onboarding(self, username: str, daily_goal: int) -> UserProfile:
        """Store the username and goal chosen during onboarding.

        Raises:
            InvalidGoal: If the goal is outside the allowed bounds
            PersistenceError: If the username is already taken
        """
        validate_goal(daily_goal)
        username = username.strip()
        if not username:
            raise ValueError("Username cannot be empty")

        try:
            return self._update({
                "username": username,
                "daily_goal_minutes": daily_goal,
                "onboarding_completed": True,
            })
        except ConstraintViolation:
            raise PersistenceError(
                "Username is already taken", details={"username": username}
            )

    def _update(self, changes: dict) -> UserProfile:
        profile = self.get_profile()
        updated = self.store.update(COLLECTION, profile.id, changes, {"id": profile.id})
        if not updated:
            raise PersistenceError(
                "Profile no longer exists in the store", details={"user_id": profile.id}
            )
        self._profile = profile.model_copy(update=changes)
        logger.info(f"Updated profile {profile.id}: {sorted(changes)}")
        return self._profile
