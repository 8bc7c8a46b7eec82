"""
Security audit logging.

Records authentication attempts, authorization failures, rate-limit
violations and other suspicious activity on the dedicated ``security`` logger
in a single-line, grep-friendly format:

    [SECURITY] AUTH_FAILURE | 2025-01-01T12:00:00+00:00 | IP: 10.0.0.1 | Email: a@b.c | Details: Invalid password

Repeated failed logins for the same email and IP are counted for a sliding
window; from the configured threshold on, every further failure also emits a
MULTIPLE_FAILED_LOGINS event. The counter only feeds the audit log and never
blocks a login.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from starlette.requests import HTTPConnection

from taskboard.config import settings
from taskboard.utils.logger import setup_logger
from taskboard.utils.ttl_store import TTLStore

logger = setup_logger("security")

AUTH_SUCCESS = "AUTH_SUCCESS"
AUTH_FAILURE = "AUTH_FAILURE"
AUTHORIZATION_FAILURE = "AUTHORIZATION_FAILURE"
RATE_LIMIT = "RATE_LIMIT"
SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"


@dataclass
class SecurityEvent:
    type: str
    ip: str
    user_id: str | None = None
    email: str | None = None
    user_agent: str | None = None
    resource: str | None = None
    action: str | None = None
    details: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def format(self) -> str:
        parts = [
            f"[SECURITY] {self.type}",
            self.timestamp.isoformat(),
            f"IP: {self.ip}",
        ]
        if self.user_id:
            parts.append(f"User: {self.user_id}")
        if self.email:
            parts.append(f"Email: {self.email}")
        if self.resource:
            parts.append(f"Resource: {self.resource}")
        if self.action:
            parts.append(f"Action: {self.action}")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " | ".join(parts)


class SecurityLogger:
    def __init__(
        self,
        failed_login_window: float = settings.failed_login_window_seconds,
        alert_threshold: int = settings.failed_login_alert_threshold,
    ):
        self.alert_threshold = alert_threshold
        self.failed_attempts = TTLStore(default_ttl=failed_login_window)

    def log_auth_attempt(
        self,
        email: str,
        success: bool,
        ip: str,
        user_agent: str | None = None,
        details: str | None = None,
    ) -> None:
        self._log_event(
            SecurityEvent(
                type=AUTH_SUCCESS if success else AUTH_FAILURE,
                email=email,
                ip=ip,
                user_agent=user_agent,
                details=details,
            )
        )
        if not success:
            self._check_failed_attempts(email, ip)

    def log_authorization_failure(
        self,
        user_id: str,
        resource: str,
        action: str,
        ip: str,
        user_agent: str | None = None,
    ) -> None:
        self._log_event(
            SecurityEvent(
                type=AUTHORIZATION_FAILURE,
                user_id=user_id,
                resource=resource,
                action=action,
                ip=ip,
                user_agent=user_agent,
            )
        )

    def log_rate_limit(self, ip: str, endpoint: str, user_agent: str | None = None) -> None:
        self._log_event(
            SecurityEvent(
                type=RATE_LIMIT,
                ip=ip,
                resource=endpoint,
                details="Rate limit exceeded",
                user_agent=user_agent,
            )
        )

    def log_suspicious_activity(
        self,
        activity_type: str,
        details: str,
        ip: str,
        user_id: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._log_event(
            SecurityEvent(
                type=SUSPICIOUS_ACTIVITY,
                user_id=user_id,
                ip=ip,
                user_agent=user_agent,
                details=f"{activity_type}: {details}",
            )
        )

    def failed_attempt_count(self, email: str, ip: str) -> int:
        return self.failed_attempts.get(f"{email}:{ip}", 0)

    def _check_failed_attempts(self, email: str, ip: str) -> None:
        key = f"{email}:{ip}"
        count = self.failed_attempts.get(key, 0) + 1
        # Each failure pushes the expiry out by a full window
        self.failed_attempts.set(key, count)

        if count >= self.alert_threshold:
            self.log_suspicious_activity(
                "MULTIPLE_FAILED_LOGINS",
                f"User {email} has {count} failed login attempts from IP {ip}",
                ip,
            )

    def _log_event(self, event: SecurityEvent) -> None:
        if event.type == AUTH_SUCCESS:
            logger.info(event.format())
        else:
            logger.warning(event.format())

    @staticmethod
    def get_client_ip(conn: HTTPConnection) -> str:
        forwarded_for = conn.headers.get("x-forwarded-for")
        if forwarded_for:
            forwarded_ip = forwarded_for.split(",")[0].strip()
            if forwarded_ip:
                return forwarded_ip

        real_ip = conn.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if conn.client and conn.client.host:
            return conn.client.host
        return "unknown"

    @staticmethod
    def get_user_agent(conn: HTTPConnection) -> str | None:
        return conn.headers.get("user-agent")


security_logger = SecurityLogger()
