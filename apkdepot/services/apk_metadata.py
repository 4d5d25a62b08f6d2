"""
APK metadata extraction.

Reads versionCode and versionName from the manifest and fingerprints the
signing certificate. The default extractor uses androguard, installed with the
``apk`` extra.
"""
import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from apkdepot.core.errors import DomainError, ErrorKind

logger = logging.getLogger(__name__)

# Stands in for the fingerprint of unsigned (debug) builds
UNSIGNED_CERTIFICATE_SHA256 = "0" * 64


@dataclass(frozen=True)
class ApkMetadata:
    version_code: int
    version_name: Optional[str]
    signing_certificate_sha256: str


def certificate_fingerprint(certificate_der: bytes) -> str:
    """Uppercase hex SHA-256 of a DER-encoded certificate."""
    return hashlib.sha256(certificate_der).hexdigest().upper()


class ApkMetadataExtractor(ABC):

    @abstractmethod
    def extract(self, content: bytes) -> ApkMetadata:
        """
        Parse an APK.

        Raises:
            DomainError: INVALID_APK when the content is not a readable APK
        """


class AndroguardMetadataExtractor(ApkMetadataExtractor):
    """Extractor backed by androguard's APK parser."""

    def extract(self, content: bytes) -> ApkMetadata:
        from androguard.core.apk import APK

        logger.debug(f"Extracting metadata from APK ({len(content)} bytes)")
        try:
            apk = APK(content, raw=True)
            version_code = int(apk.get_androidversion_code())
            version_name = apk.get_androidversion_name() or "unknown"
        except Exception as e:
            logger.warning(f"Failed to parse APK: {e}")
            raise DomainError(ErrorKind.INVALID_APK, f"Failed to parse APK file: {e}") from e

        certificates = self._signing_certificates(apk)
        if certificates:
            fingerprint = certificate_fingerprint(certificates[0])
        else:
            logger.warning("APK carries no signing certificate, treating it as unsigned")
            fingerprint = UNSIGNED_CERTIFICATE_SHA256

        return ApkMetadata(
            version_code=version_code,
            version_name=version_name,
            signing_certificate_sha256=fingerprint,
        )

    @staticmethod
    def _signing_certificates(apk) -> List[bytes]:
        """DER certificates of the signer, preferring the v3 then v2 signing blocks over v1 (JAR) signatures."""
        try:
            certificates = apk.get_certificates_der_v3() or apk.get_certificates_der_v2()
            if certificates:
                return list(certificates)
            return [apk.get_certificate_der(name) for name in apk.get_signature_names()]
        except Exception as e:
            logger.warning(f"Failed to read APK signing certificates: {e}")
            return []


@lru_cache
def get_metadata_extractor() -> ApkMetadataExtractor:
    return AndroguardMetadataExtractor()
