"""
Wallet challenge store.

Holds at most one pending login challenge per wallet address on top of a
KeyValueStore. Issuing a new challenge overwrites the previous one, so only
the most recent challenge for an address can ever be consumed.

The issued_at timestamp is stored alongside the nonce so the exact message the
client signed can be rebuilt byte for byte at verification time.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fst_auth.core.kv_store import KeyValueStore
from fst_auth.core.solana_auth import generate_nonce

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

KEY_PREFIX = "auth:challenge:"
# backend eviction runs later than the logical TTL so expiry is reported, not just missing
BACKEND_TTL_SLACK_SECONDS = 60

MESSAGE_TEMPLATE = (
    "FST login\n"
    "\n"
    "Wallet: {address}\n"
    "Nonce: {nonce}\n"
    "Issued At: {issued_at}\n"
    "\n"
    "By signing this message you prove ownership of the wallet."
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2025-11-01T00:13:53.000Z"""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)


def build_message(address: str, nonce: str, issued_at: str) -> str:
    return MESSAGE_TEMPLATE.format(address=address, nonce=nonce, issued_at=issued_at)


class ChallengeError(Exception):
    pass


class ChallengeMissing(ChallengeError):
    pass


class ChallengeExpired(ChallengeError):
    pass


@dataclass(frozen=True)
class Challenge:
    address: str
    nonce: str
    issued_at: str

    @property
    def message(self) -> str:
        return build_message(self.address, self.nonce, self.issued_at)

    def to_bytes(self) -> bytes:
        payload = {"address": self.address, "nonce": self.nonce, "issued_at": self.issued_at}
        return json.dumps(payload, sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Challenge":
        payload = json.loads(data)
        return cls(address=payload["address"], nonce=payload["nonce"], issued_at=payload["issued_at"])


class ChallengeStore:
    """Issue, look up and consume wallet login challenges."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = 300, clock: Optional[Clock] = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock or utc_now

    @staticmethod
    def _key(address: str) -> str:
        return f"{KEY_PREFIX}{address}"

    def _is_expired(self, challenge: Challenge) -> bool:
        age = self.clock() - parse_timestamp(challenge.issued_at)
        return age > timedelta(seconds=self.ttl_seconds)

    def _load(self, address: str) -> tuple[Optional[Challenge], Optional[bytes]]:
        raw = self.store.get(self._key(address))
        if raw is None:
            return None, None
        try:
            challenge = Challenge.from_bytes(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Dropping unreadable challenge entry for %s", address)
            self.store.delete(self._key(address))
            return None, None
        return challenge, raw

    def issue(self, address: str) -> Challenge:
        """Create a fresh challenge for address, replacing any pending one."""
        challenge = Challenge(
            address=address,
            nonce=generate_nonce(),
            issued_at=format_timestamp(self.clock()),
        )
        self.store.set(
            self._key(address),
            challenge.to_bytes(),
            ttl_seconds=self.ttl_seconds + BACKEND_TTL_SLACK_SECONDS,
        )
        return challenge

    def get_live(self, address: str) -> Challenge:
        """
        Return the pending challenge for address.

        Raises:
            ChallengeMissing: No challenge is pending for the address
            ChallengeExpired: The challenge outlived the TTL, it is purged
        """
        challenge, raw = self._load(address)
        if challenge is None:
            raise ChallengeMissing(address)
        if self._is_expired(challenge):
            self.store.compare_and_delete(self._key(address), raw)
            raise ChallengeExpired(address)
        return challenge

    def consume(self, address: str, nonce: str) -> bool:
        """
        Delete the pending challenge if it is still live and still carries nonce.

        Returns False when the challenge is gone, has been replaced by a newer
        one, or has expired (in which case it is purged).
        """
        challenge, raw = self._load(address)
        if challenge is None or challenge.nonce != nonce:
            return False
        if self._is_expired(challenge):
            self.store.compare_and_delete(self._key(address), raw)
            return False
        return self.store.compare_and_delete(self._key(address), raw)
