"""Signing key providers for evidence signatures (KMS-ready)."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from sentinel_api.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

HMAC_SHA256 = "HMAC-SHA256"
RSA_PSS_SHA256 = "RSA-PSS-SHA256"


class Signer(ABC):
    """Abstract signer interface."""

    algorithm: str = ""
    # True when sign() is a pure function of the input (MACs); RSA-PSS is salted.
    deterministic: bool = True

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Sign data and return signature bytes."""
        pass

    @abstractmethod
    def verify(self, data: bytes, signature: bytes) -> bool:
        """Return True if signature is valid for data."""
        pass

    @abstractmethod
    def get_key_id(self) -> str:
        """Get key identifier."""
        pass


class HmacSigner(Signer):
    """HMAC-SHA256 under a service secret."""

    algorithm = HMAC_SHA256

    def __init__(self, secret: Optional[str] = None, key_id: Optional[str] = None):
        """Initialize HMAC signer."""
        secret = secret or settings.signing_secret
        if not secret:
            raise ValueError("SIGNING_SECRET required for local_hmac signing")
        self._secret = secret.encode("utf-8")
        self._key_id = key_id or settings.signing_key_id or "local-hmac-key-1"

    def sign(self, data: bytes) -> bytes:
        h = hmac.HMAC(self._secret, hashes.SHA256())
        h.update(data)
        return h.finalize()

    def verify(self, data: bytes, signature: bytes) -> bool:
        h = hmac.HMAC(self._secret, hashes.SHA256())
        h.update(data)
        try:
            h.verify(signature)
            return True
        except InvalidSignature:
            return False

    def get_key_id(self) -> str:
        return self._key_id


class RsaPssSigner(Signer):
    """Local RSA keypair from file, RSA-PSS SHA-256 signatures."""

    algorithm = RSA_PSS_SHA256
    deterministic = False

    def __init__(self, key_path: Optional[str] = None):
        """Initialize local RSA signer."""
        self.key_path = Path(key_path or settings.signing_key_path)
        self._private_key = None
        self._public_key = None
        self._key_id = settings.signing_key_id or "local-rsa-key-1"
        self._load_or_generate_key()

    def _load_or_generate_key(self):
        """Load or generate RSA keypair."""
        if self.key_path.exists():
            with open(self.key_path, "rb") as f:
                self._private_key = serialization.load_pem_private_key(
                    f.read(), password=None, backend=default_backend()
                )
        else:
            logger.warning(f"Signing key not found at {self.key_path}, generating a new one")
            self._private_key = rsa.generate_private_key(
                public_exponent=65537,
                key_size=2048,
                backend=default_backend(),
            )
            self.key_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.key_path, "wb") as f:
                f.write(
                    self._private_key.private_bytes(
                        encoding=serialization.Encoding.PEM,
                        format=serialization.PrivateFormat.PKCS8,
                        encryption_algorithm=serialization.NoEncryption(),
                    )
                )

        self._public_key = self._private_key.public_key()

    @staticmethod
    def _padding():
        return padding.PSS(
            mgf=padding.MGF1(hashes.SHA256()),
            salt_length=padding.PSS.MAX_LENGTH,
        )

    def sign(self, data: bytes) -> bytes:
        """Sign data with RSA-PSS."""
        return self._private_key.sign(data, self._padding(), hashes.SHA256())

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Verify with the public half of the keypair."""
        try:
            self._public_key.verify(signature, data, self._padding(), hashes.SHA256())
            return True
        except InvalidSignature:
            return False

    def get_public_key_pem(self) -> str:
        """Public key for third-party verification."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def get_key_id(self) -> str:
        return self._key_id


class KmsSigner(Signer):
    """AWS KMS HMAC key (GenerateMac / VerifyMac)."""

    algorithm = HMAC_SHA256
    mac_algorithm = "HMAC_SHA_256"

    def __init__(self, key_id: str):
        """Initialize KMS signer."""
        self.key_id = key_id
        self._kms_client = None
        self._key_metadata = None
        self._initialize_kms()

    @staticmethod
    def _raise_for_client_error(e: ClientError, key_id: str, action: str):
        error_code = e.response.get("Error", {}).get("Code", "")
        if error_code == "NotFoundException":
            raise ValueError(f"KMS key {key_id} not found")
        elif error_code == "AccessDeniedException":
            raise ValueError(f"Access denied to KMS key {key_id}")
        else:
            raise ValueError(f"{action} failed: {e}")

    def _initialize_kms(self):
        """Initialize AWS KMS client and validate configuration."""
        try:
            self._kms_client = boto3.client("kms", region_name=settings.aws_region)

            try:
                response = self._kms_client.describe_key(KeyId=self.key_id)
            except ClientError as e:
                self._raise_for_client_error(e, self.key_id, f"Access to KMS key {self.key_id}")

            self._key_metadata = response["KeyMetadata"]

            key_spec = self._key_metadata.get("KeySpec", "")
            if key_spec != "HMAC_256":
                raise ValueError(f"KMS key {self.key_id} must be HMAC_256 key spec, got {key_spec}")

            key_usage = self._key_metadata.get("KeyUsage", "")
            if key_usage != "GENERATE_VERIFY_MAC":
                raise ValueError(
                    f"KMS key {self.key_id} must have GENERATE_VERIFY_MAC usage, got {key_usage}"
                )

            logger.info(
                f"KMS signer initialized for key {self.key_id}",
                extra={"key_arn": self._key_metadata.get("Arn")},
            )
        except BotoCoreError as e:
            raise ValueError(f"Failed to initialize KMS client: {e}")

    def sign(self, data: bytes) -> bytes:
        """MAC data using KMS."""
        try:
            response = self._kms_client.generate_mac(
                KeyId=self.key_id,
                Message=data,
                MacAlgorithm=self.mac_algorithm,
            )
            return response["Mac"]
        except ClientError as e:
            self._raise_for_client_error(e, self.key_id, "KMS signing")

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Verify MAC using KMS. An invalid MAC is a False, not an error."""
        try:
            response = self._kms_client.verify_mac(
                KeyId=self.key_id,
                Message=data,
                MacAlgorithm=self.mac_algorithm,
                Mac=signature,
            )
            return bool(response.get("MacValid"))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code", "") == "KMSInvalidMacException":
                return False
            self._raise_for_client_error(e, self.key_id, "KMS verification")

    def get_key_id(self) -> str:
        return self.key_id


def get_signer() -> Signer:
    """Get signer instance based on settings."""
    provider = settings.signing_key_provider.lower()

    if provider == "local_hmac":
        return HmacSigner()
    elif provider == "local_rsa":
        return RsaPssSigner()
    elif provider == "aws_kms":
        if not settings.signing_key_id:
            raise ValueError("SIGNING_KEY_ID required for AWS KMS")
        if not settings.aws_region:
            raise ValueError("AWS_REGION required for AWS KMS")
        return KmsSigner(settings.signing_key_id)
    else:
        raise ValueError(f"Unknown signing provider: {provider}")
