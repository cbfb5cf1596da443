"""Filesystem storage for payment proof uploads"""

import logging
import os
import secrets
import time
from pathlib import Path
from typing import List, Optional
from realty_gateway.config import settings
from realty_gateway.domain.exceptions import InvalidProofFileError
from realty_gateway.domain.models import ProofFile

logger = logging.getLogger(__name__)


class ProofStorage:
    """Stores proof files on local disk and hands back their path"""

    def __init__(
        self,
        upload_dir: str | None = None,
        max_size_bytes: int | None = None,
        allowed_content_types: Optional[List[str]] = None,
    ):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.max_size_bytes = max_size_bytes or settings.max_proof_size_bytes
        self.allowed_content_types = allowed_content_types or settings.allowed_proof_content_types

    def validate(self, proof: ProofFile) -> None:
        """
        Reject unsupported uploads before anything touches the disk.

        Raises:
            InvalidProofFileError: On disallowed content type or oversized file
        """
        if proof.content_type not in self.allowed_content_types:
            raise InvalidProofFileError(
                "Invalid file type. Only JPEG, PNG, GIF images and PDF files are allowed."
            )
        if len(proof.content) > self.max_size_bytes:
            max_mb = self.max_size_bytes / (1024 * 1024)
            raise InvalidProofFileError(f"File too large. Maximum size allowed is {max_mb:g}MB.")

    def save(self, proof: ProofFile) -> str:
        """Write the file under a collision-free name and return its path"""
        self.validate(proof)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        original = Path(os.path.basename(proof.filename or "proof"))
        # <basename>-<millis>-<random><ext>
        unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        target = self.upload_dir / f"{original.stem}-{unique_suffix}{original.suffix}"
        target.write_bytes(proof.content)
        return str(target)

    def exists(self, path: Optional[str]) -> bool:
        return bool(path) and Path(path).is_file()

    def delete(self, path: Optional[str]) -> bool:
        """Remove a stored file; returns False when nothing was there"""
        if not self.exists(path):
            return False
        Path(path).unlink()
        logger.info("Proof file removed", extra={"proof_path": path})
        return True
