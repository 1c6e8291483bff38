"""
In-memory one-time passcode store.

Holds at most one pending code per phone number. Codes live only in this
process: a restart drops every pending code and users simply request a
new one.
"""

import secrets
import threading
import time
import logging
from enum import Enum
from typing import Callable, Dict, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
OTP_TTL_SECONDS = 300  # 5 minutes


class OtpStatus(str, Enum):
    """Outcome of a verification attempt."""
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class PendingOtp:
    """A code waiting to be verified."""
    code: str
    expires_at: float  # Epoch seconds

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class OTPStore:
    """
    Thread-safe OTP storage keyed by phone number.

    Every entry is replaced as a whole under the lock, so a reader never
    sees a code from one request paired with the expiry of another.
    Verification reads, compares and deletes inside a single critical
    section: of two concurrent callers with the right code only one gets
    VALID.
    """

    def __init__(
        self,
        ttl_seconds: int = OTP_TTL_SECONDS,
        length: int = OTP_LENGTH,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize OTP store.

        Args:
            ttl_seconds: How long a code stays valid (default: 5 minutes)
            length: Number of digits per code (default: 6)
            clock: Time source returning epoch seconds (default: time.time)
        """
        self.ttl_seconds = ttl_seconds
        self.length = length
        self._clock = clock or time.time
        self._pending: Dict[str, PendingOtp] = {}
        self._lock = threading.Lock()

    def _generate_code(self) -> str:
        # Uniform over 000000-999999, leading zeros kept
        return str(secrets.randbelow(10 ** self.length)).zfill(self.length)

    def request(self, phone: str) -> str:
        """
        Issue a new code for a phone number.

        Any code previously pending for the same phone is discarded.

        Args:
            phone: Normalized phone number

        Returns:
            The generated code, for out-of-band delivery
        """
        code = self._generate_code()
        entry = PendingOtp(code=code, expires_at=self._clock() + self.ttl_seconds)

        with self._lock:
            self._pending[phone] = entry

        return code

    def verify(self, phone: str, code: str) -> OtpStatus:
        """
        Check a code and consume it.

        A wrong code leaves the pending entry in place. A matching code is
        removed whether it was still valid or already expired.

        Args:
            phone: Normalized phone number
            code: Code supplied by the user

        Returns:
            OtpStatus.VALID, OtpStatus.INVALID or OtpStatus.EXPIRED
        """
        with self._lock:
            entry = self._pending.get(phone)
            if entry is None or not secrets.compare_digest(
                entry.code.encode("utf-8"), code.encode("utf-8")
            ):
                return OtpStatus.INVALID

            del self._pending[phone]

            if entry.is_expired(self._clock()):
                return OtpStatus.EXPIRED

        return OtpStatus.VALID

    def has_pending(self, phone: str) -> bool:
        """Check whether a code is waiting for this phone."""
        with self._lock:
            return phone in self._pending

    def purge_expired(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [p for p, entry in self._pending.items() if entry.is_expired(now)]
            for phone in expired:
                del self._pending[phone]

        if expired:
            logger.debug(f"Purged {len(expired)} expired OTP(s)")
        return len(expired)

    def clear(self):
        """Remove all pending codes."""
        with self._lock:
            self._pending.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
