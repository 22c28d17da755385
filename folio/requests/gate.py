"""
Request gate - security checks and identity resolution for inbound requests.

Order matters:
1. A blacklisted email is refused before anything is written.
2. Injection/XSS signatures in free text are logged as an attack and
   answered with a success-shaped response; nothing else is written and no
   task is queued.
3. The identity is resolved or created, then refused if its level is blocked.

Only the access-log write in step 2 may happen before a rejection.
"""

from __future__ import annotations

from dataclasses import dataclass

from folio.config import BLOCKED_LEVEL, PUBLIC_LEVEL
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter, log_event
from folio.security.audit import AccessLog
from folio.security.blacklist import Blacklist
from folio.users.repository import UserRepository, resolve_or_create_identity
from folio.utils.redaction import redact
from folio.utils.validators import any_malicious

logger = get_logger(__name__)

ATTACK_NAME_PREFIX = "[ATTACK]"


@dataclass(frozen=True)
class Submission:
    """A visitor's contact / resume / access request."""

    name: str
    message: str
    request_type: str
    email: str | None = None
    company: str | None = None


@dataclass(frozen=True)
class Admission:
    uuid: str
    level: int


@dataclass(frozen=True)
class Viewer:
    """What the content endpoints know about whoever is asking."""

    level: int
    registered: bool


class AdmissionError(Exception):
    """Base class for refused requests. Carries the HTTP answer."""

    status_code = 403
    public_message = "Access Denied"


class BlacklistedError(AdmissionError):
    status_code = 403
    public_message = "Access Denied"


class MaliciousInputError(AdmissionError):
    """Answered as if the request succeeded."""

    status_code = 200
    public_message = "Received"


class BlockedError(AdmissionError):
    status_code = 403
    public_message = "Blocked by Admin"


def admit(
    submission: Submission,
    token: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
) -> Admission:
    """
    Admit a request or raise.

    Args:
        submission: The visitor's request
        token: Identity token (user uuid) the visitor already holds, if any
        ip: Client address, for the access log
        user_agent: Client user agent, for the access log

    Returns:
        Admission with the resolved uuid and current access level

    Raises:
        BlacklistedError: The email is blacklisted
        MaliciousInputError: Free text matched an attack signature
        BlockedError: The resolved identity is blocked
    """
    email = submission.email

    if email and Blacklist.is_blacklisted(email):
        logger.info("Refused request from blacklisted %s", redact(email))
        counter("gate.blacklisted")
        raise BlacklistedError(f"Blacklisted: {redact(email)}")

    if any_malicious(submission.name, submission.message, submission.company):
        AccessLog.append(
            uuid=token,
            email=email,
            name=f"{ATTACK_NAME_PREFIX} {submission.name}",
            ip=ip,
            user_agent=user_agent,
            payload=submission.message,
        )
        log_event("security.attack_detected", email=redact(email), ip=ip)
        counter("gate.attack")
        raise MaliciousInputError("Attack signature in request")

    user_uuid = resolve_or_create_identity(email=email, name=submission.name, existing_uuid=token)
    level = UserRepository.get_access_level(user_uuid)

    if level <= BLOCKED_LEVEL:
        logger.info("Refused request from blocked user %s", user_uuid)
        counter("gate.blocked")
        raise BlockedError(f"Blocked: {user_uuid}")

    counter("gate.admitted")
    return Admission(uuid=user_uuid, level=level)


def identify_viewer(token: str | None) -> Viewer:
    """
    Level and registration status for a content request.

    Registered means the token resolves to an existing user row that is not
    blocked. Unknown or missing tokens read at the public level.
    """
    user = UserRepository.get_by_token(token)
    if user is None:
        return Viewer(level=PUBLIC_LEVEL, registered=False)
    return Viewer(level=user.access_level, registered=not user.is_blocked)
