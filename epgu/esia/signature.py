"""
Signature providers for ESIA client secrets.
"""

import logging
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Union

logger = logging.getLogger(__name__)


class SignatureProvider(ABC):
    """Signs request data with the information system certificate."""

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Return a detached signature of ``data``."""
        pass

    @abstractmethod
    def cert_hash(self) -> str:
        """Return the hash of the signing certificate."""
        pass


class NopSignatureProvider(SignatureProvider):
    """Provider returning a fixed signature, for tests and stubs."""

    def __init__(self, signature: Union[bytes, str], cert_hash: str):
        self._signature = signature.encode() if isinstance(signature, str) else signature
        self._cert_hash = cert_hash

    def sign(self, data: bytes) -> bytes:
        if not self._signature:
            raise ValueError("no signature configured")
        return self._signature

    def cert_hash(self) -> str:
        return self._cert_hash


class LocalCryptoProSignatureProvider(SignatureProvider):
    """
    GOST R 34.10-2012 (256 bit) signatures made by the ``csptest`` utility of
    a locally installed CryptoPro CSP 5.

    Intended for debugging the ESIA integration: the workstation edition of
    CryptoPro CSP cannot serve as a server-side signer.

    Args:
        csptest_path: Full path to csptest, e.g. "/opt/cprocsp/bin/csptest"
        container: Certificate container name, as listed by ``csptest -keyset``
        cert_hash: Certificate hash, as printed by
            ``cpverify -mk <cert.cer> -alg GR3411_2012_256``
        run: Command runner taking an argument list; ``subprocess.run`` with
            ``check=True`` by default
    """

    def __init__(
        self,
        csptest_path: str,
        container: str,
        cert_hash: str,
        run: Optional[Callable[[List[str]], Any]] = None,
    ):
        self.csptest_path = csptest_path
        self.container = container
        self._cert_hash = cert_hash
        self._run = run or _run_checked

    def sign(self, data: bytes) -> bytes:
        """
        Raises:
            OSError: If the temporary files cannot be written or read
            subprocess.CalledProcessError: If csptest fails
        """
        with tempfile.TemporaryDirectory(prefix="epgu-sign-") as workdir:
            data_path = os.path.join(workdir, "data")
            signature_path = os.path.join(workdir, "signature")
            with open(data_path, "wb") as f:
                f.write(data)

            self._run([
                self.csptest_path,
                "-keys",
                "-sign", "GOST12_256",
                "-cont", self.container,
                "-keytype", "exchange",
                "-in", data_path,
                "-out", signature_path,
            ])

            with open(signature_path, "rb") as f:
                signature = f.read()

        # csptest writes the signature little-endian, ESIA expects it reversed
        return signature[::-1]

    def cert_hash(self) -> str:
        return self._cert_hash


def _run_checked(args: List[str]) -> None:
    logger.debug(f"Running {args[0]} to sign request data")
    subprocess.run(args, check=True, capture_output=True)
