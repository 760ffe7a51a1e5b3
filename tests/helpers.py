import base64
from datetime import datetime, timedelta, timezone

import base58
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from fastapi.testclient import TestClient


class FakeClock:
    """Controllable UTC clock"""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 11, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class Wallet:
    """A real ED25519 keypair with its base58 Solana address"""

    def __init__(self):
        self.private_key = Ed25519PrivateKey.generate()
        public_bytes = self.private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self.address = base58.b58encode(public_bytes).decode()

    def sign_bytes(self, message: str) -> bytes:
        return self.private_key.sign(message.encode("utf-8"))

    def sign(self, message: str) -> str:
        return base64.b64encode(self.sign_bytes(message)).decode()

    def sign_b58(self, message: str) -> str:
        return base58.b58encode(self.sign_bytes(message)).decode()


def login(client: TestClient, wallet: Wallet) -> dict:
    """Run the full challenge / sign / verify flow and return the verify body"""
    response = client.post("/auth/nonce", json={"walletAddress": wallet.address})
    assert response.status_code == 200
    message = response.json()["message"]
    response = client.post(
        "/auth/verify",
        json={"walletAddress": wallet.address, "signature": wallet.sign(message)},
    )
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
