"""
Moderation flows behind signed links.

- Unsubscribe: ban the address, hand back a return link, and email that link
  at most once per cooldown period.
- Whitelist: a return link lifts the ban.
- Honeypot: a followed trap link bans the address and alerts every admin.
- Admin renewal: an expired admin link gets a fresh one emailed to the owner.

Bans and unbans happen before anything is queued; queued work is the
outbound email, plus the unsubscribe cooldown once its email has gone out.
"""

from __future__ import annotations

from dataclasses import dataclass

from folio.config import (
    HONEYPOT_ADMIN_TOKEN_TTL,
    UNSUBSCRIBE_COOLDOWN,
    UNSUBSCRIBE_COOLDOWN_PREFIX,
)
from folio.infrastructure.settings import Settings
from folio.notifications.mailer import Mailer
from folio.notifications.templates import (
    admin_link_email,
    honeypot_alert_email,
    return_link_email,
)
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter, log_event
from folio.security.access import AccessControl
from folio.security.audit import AccessLog
from folio.security.cooldowns import CooldownRepository
from folio.security.tokens import TokenService
from folio.tasks.queue import Operation, TaskQueue
from folio.utils.redaction import redact

logger = get_logger(__name__)

UNSUBSCRIBE_REASON = "User requested stop"
HONEYPOT_REASON = "Honeypot"
RESTARTED_MARKER = "[ACTION] User Restarted"


@dataclass(frozen=True)
class UnsubscribeResult:
    email: str
    return_link: str
    notified: bool


class ModerationService:
    """Link-driven bans, unbans and admin notifications."""

    def __init__(
        self,
        settings: Settings,
        *,
        tokens: TokenService,
        queue: TaskQueue,
        mailer: Mailer,
        cooldowns: CooldownRepository | None = None,
    ) -> None:
        self.settings = settings
        self.tokens = tokens
        self.queue = queue
        self.mailer = mailer
        self.cooldowns = cooldowns or CooldownRepository()
        self._pending_return_links: set[str] = set()

    def _email_operation(self, to: str, subject: str, body: str) -> Operation:
        async def operation() -> None:
            await self.mailer.send_async(to, subject, body)

        return operation

    def _return_link_operation(self, email: str, key: str, return_link: str) -> Operation:
        """Send the return link, then start the cooldown. Failed sends leave it unset."""
        body = return_link_email(return_link, self.settings.owner_name)

        async def operation() -> None:
            try:
                await self.mailer.send_async(email, "Settings updated", body)
                self.cooldowns.touch(key)
            finally:
                self._pending_return_links.discard(key)

        return operation

    def unsubscribe(self, token: str | None) -> UnsubscribeResult:
        """
        Ban the token's address and queue its return-link email.

        The cooldown starts only once that email is actually sent. Until then
        the address is held in an in-process pending set, so repeat visits do
        not queue duplicates. Between a failed attempt and its retry the
        address is not pending, and a visit in that window may queue one more.

        Raises:
            InvalidTokenError: Bad or missing unsubscribe token
        """
        email = self.tokens.verify_unsubscribe_token(token)
        AccessControl.ban(email, UNSUBSCRIBE_REASON)
        return_link = self.tokens.return_link(email)

        key = f"{UNSUBSCRIBE_COOLDOWN_PREFIX}{email}"
        if key in self._pending_return_links or self.cooldowns.is_cooling_down(
            key, UNSUBSCRIBE_COOLDOWN
        ):
            logger.info("Skipped return-link email to %s (sent within cooldown)", redact(email))
            counter("moderation.unsubscribe_email_skipped")
            return UnsubscribeResult(email=email, return_link=return_link, notified=False)

        self._pending_return_links.add(key)
        self.queue.enqueue(
            self._return_link_operation(email, key, return_link),
            label="unsubscribe-confirmation",
        )
        return UnsubscribeResult(email=email, return_link=return_link, notified=True)

    def restore(
        self, token: str | None, ip: str | None = None, user_agent: str | None = None
    ) -> str:
        """
        Lift a ban from a return link.

        Raises:
            InvalidTokenError: Bad, expired or wrong-scope token
        """
        email = self.tokens.verify_return_token(token)
        AccessControl.unban(email)
        AccessLog.append(email=email, name=RESTARTED_MARKER, ip=ip, user_agent=user_agent)
        logger.info("Restored %s from return link", redact(email))
        return email

    def trip_honeypot(self, token: str | None) -> str:
        """
        Ban the address a trap token was issued to and alert the admins.

        Raises:
            InvalidTokenError: Bad, expired or wrong-purpose token (nothing is banned)
        """
        email = self.tokens.verify_trap_token(token)
        AccessControl.ban(email, HONEYPOT_REASON)
        log_event("security.honeypot_triggered", email=redact(email))
        counter("moderation.honeypot")

        admin_link = self.tokens.admin_link(self.tokens.issue_admin_token(HONEYPOT_ADMIN_TOKEN_TTL))
        body = honeypot_alert_email(email, admin_link)
        for admin_email in self.settings.admin_emails:
            self.queue.enqueue(
                self._email_operation(admin_email, "Honeypot Triggered", body),
                label="honeypot-alert",
            )

        if not self.settings.admin_emails:
            logger.warning("Honeypot triggered but no ADMIN_EMAILS configured")
        return email

    def renew_admin_link(self) -> bool:
        """
        Queue a fresh admin link to the owner.

        Returns:
            False if there is no owner address to send it to
        """
        if not self.settings.email_to:
            logger.warning("Admin token expired but EMAIL_TO is not set, cannot renew")
            return False

        self.queue.enqueue(
            self._email_operation(
                self.settings.email_to, "Admin link renewed", admin_link_email(self.tokens.admin_link())
            ),
            label="admin-link-renewal",
        )
        counter("moderation.admin_link_renewed")
        return True
