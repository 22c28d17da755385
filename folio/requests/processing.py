"""
Request processing - the background half of a visitor request.

Runs on the task queue after the gate admitted a request:
1. Re-read the user's level and filter the content document at it
2. Draft a reply with the AI responder (default reply on any failure)
3. Email the reply to the visitor, attaching the resume when the draft asks
   for it and the file exists
4. Email a summary to the owner

Email failures propagate so the queue can retry the whole task.
"""

from __future__ import annotations

from folio.config import BLOCKED_LEVEL
from folio.content.filter import filter_content
from folio.content.store import ContentStore, extract_projects
from folio.infrastructure.settings import Settings
from folio.llm.responder import DEFAULT_REPLY, DraftReply, Responder
from folio.notifications.mailer import Attachment, Mailer
from folio.notifications.templates import admin_summary_email, user_reply_email
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter, time_block
from folio.requests.gate import Submission
from folio.security.blacklist import Blacklist
from folio.security.tokens import TokenService
from folio.tasks.queue import Operation
from folio.users.repository import UserRepository
from folio.utils.redaction import redact

logger = get_logger(__name__)


class RequestProcessor:
    """Builds and runs the queued operation for an admitted request."""

    def __init__(
        self,
        settings: Settings,
        *,
        store: ContentStore,
        responder: Responder,
        mailer: Mailer,
        tokens: TokenService,
    ) -> None:
        self.settings = settings
        self.store = store
        self.responder = responder
        self.mailer = mailer
        self.tokens = tokens

    def operation_for(self, submission: Submission, user_uuid: str) -> Operation:
        async def operation() -> None:
            await self.process(submission, user_uuid)

        return operation

    async def process(self, submission: Submission, user_uuid: str) -> None:
        logger.info(
            "Processing %s request for %s (%s)",
            submission.request_type,
            user_uuid,
            redact(submission.email),
        )

        level = UserRepository.get_access_level(user_uuid)
        visible = filter_content(self.store.load(), level)
        with time_block("requests.draft"):
            reply = await self._draft(submission, extract_projects(visible))

        if submission.email and self._may_email(submission.email, level):
            await self._send_reply(submission.email, reply)

        await self._send_summary(submission, reply)
        counter("requests.processed")

    async def _draft(self, submission: Submission, projects: list[dict[str, str]]) -> DraftReply:
        try:
            return await self.responder.generate(
                name=submission.name,
                company=submission.company,
                request_type=submission.request_type,
                message=submission.message,
                projects=projects,
            )
        except Exception as e:
            logger.warning("AI reply failed, using default reply: %s", e)
            counter("requests.default_reply")
            return DEFAULT_REPLY

    @staticmethod
    def _may_email(email: str, level: int) -> bool:
        # Blocked or unsubscribed since admission
        return level > BLOCKED_LEVEL and not Blacklist.is_blacklisted(email)

    async def _send_reply(self, email: str, reply: DraftReply) -> None:
        trap_link = self.tokens.trap_link(email) if self.settings.honeypot_links else None
        body = user_reply_email(reply.body, self.tokens.unsubscribe_link(email), trap_link)

        attachments: list[Attachment] = []
        if reply.attach_resume:
            resume = self._resume()
            if resume is not None:
                attachments.append(resume)

        await self.mailer.send_async(email, reply.subject, body, attachments)

    async def _send_summary(self, submission: Submission, reply: DraftReply) -> None:
        if not self.settings.email_to:
            logger.warning("EMAIL_TO not set, skipping admin summary")
            return

        body = admin_summary_email(
            request_type=submission.request_type,
            name=submission.name,
            email=submission.email,
            company=submission.company,
            message=submission.message,
            reply_html=reply.body,
            attached_resume=reply.attach_resume,
            admin_link=self.tokens.admin_link(),
        )
        await self.mailer.send_async(
            self.settings.email_to, f"[{submission.request_type}] {submission.name}", body
        )

    def _resume(self) -> Attachment | None:
        try:
            content = self.settings.resume_path.read_bytes()
        except OSError:
            logger.warning("Resume requested but not readable at %s", self.settings.resume_path)
            return None
        return Attachment(filename=self.settings.resume_filename, content=content)
