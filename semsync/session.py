"""Signed-in user state and the live subscriptions that belong to it."""

import logging
from typing import Optional

from .database.changes import Subscription

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")


class SessionContext:
    """
    Holds the current user, the UI theme, and every subscription opened on the
    user's behalf. Signing out closes all of them.

    Usage:
        session = SessionContext()
        session.sign_in(profile)
        session.track(db.subscribe_to_tasks(profile["uid"]))
        ...
        session.sign_out()
    """

    def __init__(self, theme: str = "light"):
        self.user: Optional[dict] = None
        self.theme = theme if theme in THEMES else "light"
        self._subscriptions: list[Subscription] = []

    @property
    def is_signed_in(self) -> bool:
        return self.user is not None

    @property
    def uid(self) -> Optional[str]:
        return self.user["uid"] if self.user else None

    def sign_in(self, profile: dict) -> None:
        """Make `profile` the current user, ending any previous session first."""
        if not profile or not profile.get("uid"):
            raise ValueError("Profile must include a uid")
        if self.user is not None:
            self.sign_out()
        self.user = profile
        logger.info(f"Signed in {profile['uid']}")

    def sign_out(self) -> None:
        """Forget the user and close every tracked subscription."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        closed = len(self._subscriptions)
        self._subscriptions = []

        if self.user is not None:
            logger.info(f"Signed out {self.user['uid']} ({closed} subscriptions closed)")
        self.user = None

    def track(self, subscription: Subscription) -> Subscription:
        """Register a subscription to be closed at sign-out."""
        if not self.is_signed_in:
            subscription.unsubscribe()
            raise RuntimeError("Cannot open subscriptions without a signed-in user")
        self._subscriptions.append(subscription)
        return subscription

    @property
    def subscriptions(self) -> list[Subscription]:
        return [s for s in self._subscriptions if not s.closed]

    def toggle_theme(self) -> str:
        self.theme = "dark" if self.theme == "light" else "light"
        return self.theme
