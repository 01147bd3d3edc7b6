"""
Write Guardian — Gates every write an automation sends.
GET is always allowed. Writes must match an endpoint the running automation
declared; in what-if mode they are recorded as planned changes and never sent.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("entra_blog.safety")

# ─── HTTP Methods ────────────────────────────────────────────────────────────

READ_METHODS = {"GET", "HEAD", "OPTIONS"}
WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class SafetyViolation(Exception):
    """Raised when an undeclared write is attempted."""
    pass


class WriteGuardian:
    """
    Validates every outbound HTTP request against the writes an automation
    declared up front. Keeps an audit record of checks, planned and sent
    writes, and violations.
    """

    def __init__(self, allowed_writes: Optional[list[str]] = None, what_if: bool = False):
        self.what_if = what_if
        self._allowed: list[re.Pattern] = [
            re.compile(p, re.IGNORECASE) for p in (allowed_writes or [])
        ]
        self.checks_performed: int = 0
        self.planned: list[dict] = []
        self.sent: list[dict] = []
        self.violations: list[dict] = []
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    def allow(self, pattern: str) -> None:
        """Declare one more write endpoint (regex searched against the URL)."""
        self._allowed.append(re.compile(pattern, re.IGNORECASE))

    def validate_request(self, method: str, url: str, body: Optional[dict] = None) -> bool:
        """
        Validate a request before it is sent.
        Returns True if it should be sent, False if it was only planned
        (what-if mode). Raises SafetyViolation for undeclared writes.
        """
        self.checks_performed += 1
        method_upper = method.upper()

        if method_upper in READ_METHODS:
            return True

        if method_upper not in WRITE_METHODS:
            self._record_violation(method_upper, url, "Unsupported HTTP method")
            raise SafetyViolation(f"Unsupported HTTP method: {method_upper} {url}")

        if not any(p.search(url) for p in self._allowed):
            self._record_violation(method_upper, url, "Undeclared write endpoint")
            raise SafetyViolation(
                f"Write to undeclared endpoint blocked: {method_upper} {url}"
            )

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method_upper,
            "url": url,
            "body": body,
        }
        if self.what_if:
            self.planned.append(entry)
            logger.info(f"What-if: would send {method_upper} {url}")
            return False

        self.sent.append(entry)
        return True

    def _record_violation(self, method: str, url: str, reason: str):
        violation = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method,
            "url": url,
            "reason": reason,
        }
        self.violations.append(violation)
        logger.critical(f"SAFETY VIOLATION: {reason} — {method} {url}")

    def get_audit_record(self) -> dict:
        """Return the full write audit record."""
        return {
            "write_guardian": {
                "mode": "WHAT-IF" if self.what_if else "LIVE",
                "started_at": self.started_at,
                "checks_performed": self.checks_performed,
                "writes_planned": len(self.planned),
                "writes_sent": len(self.sent),
                "violations_detected": len(self.violations),
                "violations": self.violations,
            }
        }

    def print_banner(self):
        """Print the what-if banner when no writes will be sent."""
        if not self.what_if:
            return
        print("=" * 70)
        print("  WHAT-IF MODE -- lookups run, writes are planned but NOT sent")
        print("=" * 70)
