"""
GRC Access Account Security - Lockout State Machine
===================================================
Per-user, time-boxed lockout held on the user row:

    Active --(failed login #max)--> Locked --(unlock | expiry)--> Active

`locked_until` at or before now is equivalent to unlocked on every read
path; nothing sweeps expired locks. Counters are incremented with an F()
expression so concurrent failures never lose an increment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.db.models import F

from grc_access.audit.actions import AuditAction
from grc_access.audit.functions import audited_change
from grc_access.conf import get_access_settings
from grc_access.identity_store.errors import IdentityNotFoundError
from grc_access.identity_store.models import User
from grc_access.primitives.actor import Actor
from grc_access.storage import storage_errors
from grc_access.time.clock import Clock, now_utc
from grc_access.time.temporal import is_active_until, minutes_from

logger = logging.getLogger("grc.security")

LOCKOUT_ACTOR = Actor.system("account_security")


@dataclass(frozen=True)
class LoginAttemptResult:
    locked: bool
    attempts: int
    remaining: int
    locked_until: Optional[datetime] = None


def _canonical_user_id(user_id) -> int:
    if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
        raise ValueError("user_id must be a positive integer.")
    return user_id


def _positive_int(value, *, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{field_name} must be a positive integer.")
    return value


class AccountSecurityService:
    def __init__(self, clock: Clock | None = None):
        self._clock = clock

    def _now(self) -> datetime:
        return now_utc(self._clock)

    def record_failed_login(
        self,
        user_id: int,
        max_attempts: int | None = None,
    ) -> LoginAttemptResult:
        """
        Count one failed login and lock the account when the count reaches
        `max_attempts` (GRC_ACCESS["MAX_FAILED_LOGINS"] when omitted).
        """
        canonical_user_id = _canonical_user_id(user_id)
        access_settings = get_access_settings()
        threshold = _positive_int(
            max_attempts if max_attempts is not None else access_settings.max_failed_logins,
            field_name="max_attempts",
        )
        now = self._now()

        with storage_errors("record_failed_login"):
            with transaction.atomic():
                updated = User.objects.filter(id=canonical_user_id).update(
                    failed_login_attempts=F("failed_login_attempts") + 1,
                )
                if not updated:
                    raise IdentityNotFoundError(
                        f"user_id '{canonical_user_id}' was not found."
                    )
                attempts = (
                    User.objects.filter(id=canonical_user_id)
                    .values_list("failed_login_attempts", flat=True)
                    .get()
                )

            if attempts < threshold:
                logger.debug(
                    f"Failed login {attempts}/{threshold} for user {canonical_user_id}"
                )
                return LoginAttemptResult(
                    locked=False,
                    attempts=attempts,
                    remaining=threshold - attempts,
                )

            locked_until = minutes_from(now, access_settings.lockout_minutes)
            with audited_change(
                action=AuditAction.USER_LOCKED,
                performed_by=LOCKOUT_ACTOR,
                user_id=canonical_user_id,
                details={
                    "reason": "max_failed_attempts",
                    "attempts": attempts,
                    "locked_until": locked_until.isoformat(),
                },
            ):
                User.objects.filter(id=canonical_user_id).update(
                    locked_until=locked_until,
                    updated_at=now,
                )

        logger.warning(
            f"User {canonical_user_id} locked until {locked_until.isoformat()} "
            f"after {attempts} failed logins"
        )
        return LoginAttemptResult(
            locked=True,
            attempts=attempts,
            remaining=0,
            locked_until=locked_until,
        )

    def is_user_locked(self, user_id: int) -> bool:
        """Pure read; an unknown user is not locked."""
        canonical_user_id = _canonical_user_id(user_id)
        with storage_errors("is_user_locked"):
            locked_until = (
                User.objects.filter(id=canonical_user_id)
                .values_list("locked_until", flat=True)
                .first()
            )
        return is_active_until(locked_until, self._now())

    def get_locked_until(self, user_id: int) -> datetime | None:
        """The active lock deadline, or None when the account is usable."""
        canonical_user_id = _canonical_user_id(user_id)
        with storage_errors("get_locked_until"):
            locked_until = (
                User.objects.filter(id=canonical_user_id)
                .values_list("locked_until", flat=True)
                .first()
            )
        if is_active_until(locked_until, self._now()):
            return locked_until
        return None

    def lock_user(
        self,
        user_id: int,
        duration_minutes: int,
        locked_by: Actor,
    ) -> datetime:
        canonical_user_id = _canonical_user_id(user_id)
        if not isinstance(locked_by, Actor):
            raise ValueError("locked_by must be an Actor.")
        now = self._now()
        locked_until = minutes_from(
            now, _positive_int(duration_minutes, field_name="duration_minutes")
        )

        with storage_errors("lock_user"):
            with audited_change(
                action=AuditAction.USER_LOCKED,
                performed_by=locked_by,
                user_id=canonical_user_id,
                details={
                    "reason": "manual",
                    "duration_minutes": duration_minutes,
                    "locked_until": locked_until.isoformat(),
                },
            ):
                updated = User.objects.filter(id=canonical_user_id).update(
                    locked_until=locked_until,
                    updated_at=now,
                )
                if not updated:
                    raise IdentityNotFoundError(
                        f"user_id '{canonical_user_id}' was not found."
                    )

        logger.warning(
            f"User {canonical_user_id} locked by {locked_by.actor_id} "
            f"until {locked_until.isoformat()}"
        )
        return locked_until

    def unlock_user(self, user_id: int, unlocked_by: Actor) -> None:
        """Clear the lock and the failure counter together."""
        canonical_user_id = _canonical_user_id(user_id)
        if not isinstance(unlocked_by, Actor):
            raise ValueError("unlocked_by must be an Actor.")

        with storage_errors("unlock_user"):
            with audited_change(
                action=AuditAction.USER_UNLOCKED,
                performed_by=unlocked_by,
                user_id=canonical_user_id,
            ):
                updated = User.objects.filter(id=canonical_user_id).update(
                    locked_until=None,
                    failed_login_attempts=0,
                    updated_at=self._now(),
                )
                if not updated:
                    raise IdentityNotFoundError(
                        f"user_id '{canonical_user_id}' was not found."
                    )
        logger.info(f"User {canonical_user_id} unlocked by {unlocked_by.actor_id}")

    def reset_failed_logins(self, user_id: int) -> None:
        """Successful login: zero the counter and stamp last_login."""
        canonical_user_id = _canonical_user_id(user_id)
        now = self._now()
        with storage_errors("reset_failed_logins"):
            User.objects.filter(id=canonical_user_id).update(
                failed_login_attempts=0,
                last_login=now,
                updated_at=now,
            )
