"""TLS key pairs: loading, self-signed generation and reloading on change."""

from __future__ import annotations

import datetime
import logging
import os
import secrets
import threading
from dataclasses import dataclass
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Wait for file events to settle before reloading.
DEBOUNCE_DELAY = 0.25

_RELOAD_EVENTS = frozenset({"created", "modified", "moved"})


@dataclass(frozen=True)
class Certificate:
    """A certificate chain with its private key, in parsed and PEM form."""

    chain: tuple[x509.Certificate, ...]
    private_key: Any
    cert_pem: bytes
    key_pem: bytes

    @property
    def leaf(self) -> x509.Certificate:
        """The first certificate of the chain."""
        return self.chain[0]


def _spki(public_key: Any) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def _key_pair_from_pem(cert_pem: bytes, key_pem: bytes) -> Certificate:
    try:
        chain = tuple(x509.load_pem_x509_certificates(cert_pem))
    except ValueError as exc:
        raise ValueError(f"failed to find any PEM data in certificate input: {exc}") from exc
    if not chain:
        raise ValueError("failed to find any PEM data in certificate input")
    try:
        private_key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"failed to parse private key: {exc}") from exc
    if _spki(chain[0].public_key()) != _spki(private_key.public_key()):
        raise ValueError("private key does not match public key")
    return Certificate(chain=chain, private_key=private_key, cert_pem=cert_pem, key_pem=key_pem)


def load_x509_key_pair(cert_file: str | os.PathLike[str], key_file: str | os.PathLike[str]) -> Certificate:
    """Read a PEM certificate chain and its matching private key from files."""
    with open(cert_file, "rb") as handle:
        cert_pem = handle.read()
    with open(key_file, "rb") as handle:
        key_pem = handle.read()
    return _key_pair_from_pem(cert_pem, key_pem)


def create_self_signed_certificate() -> Certificate:
    """Create a self-signed server certificate valid for ten years."""
    serial = secrets.randbelow((1 << 128) - 1) + 1
    now = datetime.datetime.now(datetime.timezone.utc)
    key = rsa.generate_private_key(public_exponent=65537, key_size=4096)
    name = x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Inference Ext")])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=365 * 10))
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return _key_pair_from_pem(cert_pem, key_pem)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, reloader: CertReloader) -> None:
        super().__init__()
        self._reloader = reloader

    def on_any_event(self, event: FileSystemEvent) -> None:
        logger.debug("Cert changed: %s %s", event.event_type, event.src_path)
        if event.event_type in _RELOAD_EVENTS:
            self._reloader._schedule_reload()


class CertReloader:
    """Holds a certificate and reloads tls.crt/tls.key from a directory when it changes."""

    def __init__(self, path: str | os.PathLike[str], initial: Certificate, *, debounce: float = DEBOUNCE_DELAY) -> None:
        self._path = os.fspath(path)
        self._cert = initial
        self._debounce = debounce
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._closed = False

        if not os.path.exists(self._path):
            raise FileNotFoundError(f"failed to watch {self._path!r}: no such file or directory")
        self._observer = Observer()
        try:
            self._observer.schedule(_ChangeHandler(self), self._path, recursive=False)
            self._observer.start()
        except OSError as exc:
            self._observer.stop()
            raise OSError(f"failed to watch {self._path!r}: {exc}") from exc

    def get(self) -> Certificate:
        """Return the current certificate."""
        with self._lock:
            return self._cert

    def _schedule_reload(self) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self._reload)
            self._timer.daemon = True
            self._timer.start()

    def _reload(self) -> None:
        try:
            cert = load_x509_key_pair(
                os.path.join(self._path, "tls.crt"), os.path.join(self._path, "tls.key")
            )
        except (OSError, ValueError):
            logger.exception("Failed to reload TLS certificate from %s", self._path)
            return
        with self._lock:
            if self._closed:
                return
            self._cert = cert
        logger.debug("Reloaded TLS certificate from %s", self._path)

    def close(self) -> None:
        """Stop watching the directory."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
        self._observer.stop()
        self._observer.join()

    def __enter__(self) -> CertReloader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()