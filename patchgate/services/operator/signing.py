"""
Patch signature verification.

A patch counts as signed when a detached ``<patch>.sig`` file sits next to
it. Verification shells out to ``cosign verify-blob``.
"""

import asyncio
import os
from abc import ABC, abstractmethod

from patchgate.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_SUFFIX = ".sig"


def signature_path(patch_path: str) -> str:
    return f"{patch_path}{SIGNATURE_SUFFIX}"


class SignatureVerifier(ABC):
    @abstractmethod
    async def is_signed(self, patch_path: str) -> bool:
        """True when a signature exists for the patch."""

    @abstractmethod
    async def verify(self, patch_path: str) -> bool:
        """True when the signature checks out."""


class CosignVerifier(SignatureVerifier):
    """Verifies detached signatures with the cosign CLI."""

    def __init__(self, binary: str = "cosign", timeout: float = 60.0):
        self.binary = binary
        self.timeout = timeout

    async def is_signed(self, patch_path: str) -> bool:
        return os.path.exists(signature_path(patch_path))

    async def verify(self, patch_path: str) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                "verify-blob",
                patch_path,
                "--signature",
                signature_path(patch_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            logger.error("cosign binary %s not found", self.binary)
            return False

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.error("cosign verify-blob timed out after %ss for %s", self.timeout, patch_path)
            return False

        if proc.returncode != 0:
            logger.warning(
                "Signature verification failed for %s: %s",
                patch_path,
                stderr.decode(errors="replace").strip(),
            )
            return False
        return True


class StaticSignatureVerifier(SignatureVerifier):
    """Fixed answers; used in tests and dry runs."""

    def __init__(self, signed: bool = True, verified: bool = True):
        self.signed = signed
        self.verified = verified

    async def is_signed(self, patch_path: str) -> bool:
        return self.signed

    async def verify(self, patch_path: str) -> bool:
        return self.verified
