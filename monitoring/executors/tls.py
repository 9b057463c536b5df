"""
============================================================================
PULSEWATCH - TLS CERTIFICATE EXECUTOR
============================================================================
Completes a TLS handshake with the target and inspects the peer
certificate.

Reports Down when
-----------------
• the handshake fails or the chain is untrusted (unless verification is
  disabled, in which case only dates are checked)
• the certificate is expired or not yet valid
• fewer than ``expiry_days`` days remain before expiry

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

import asyncio
import ssl
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from config.constants import Defaults, MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger
from utils.validators import URLValidator


logger = get_logger("TLSExecutor")

_CERT_TIME_FORMAT = "%b %d %H:%M:%S %Y %Z"


class TLSConfig(ExecutorConfig):
    host: str
    port: int = Field(default=443, ge=1, le=65535)
    expiry_days: int = Field(default=Defaults.TLS_EXPIRY_DAYS, ge=0, le=3650)
    verify: bool = True

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        if not URLValidator.is_valid_host(v):
            raise ValueError("must be a hostname or IP address")
        return v


def _common_name(rdns: Any) -> str:
    for rdn in rdns or ():
        for key, value in rdn:
            if key == "commonName":
                return value
    return ""


def _parse_cert_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, _CERT_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class TLSExecutor(Executor):
    """TLS handshake + certificate validity check."""

    type = MonitorType.TLS.value
    config_model = TLSConfig

    @staticmethod
    def _build_context(verify: bool) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: TLSConfig = self.parse(monitor)
        ssl_context = self._build_context(config.verify)
        start_time = time.perf_counter()

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    config.host,
                    config.port,
                    ssl=ssl_context,
                    server_hostname=config.host,
                ),
                timeout=max(context.remaining(), 0.001),
            )
        except asyncio.TimeoutError:
            return context.down(f"TLS handshake with {config.host}:{config.port} timed out")
        except ssl.SSLCertVerificationError as e:
            return context.down(f"Certificate verification failed: {e.verify_message or e}")
        except ssl.SSLError as e:
            return context.down(f"TLS error: {e.reason or e}")
        except OSError as e:
            return context.down(f"Connection to {config.host}:{config.port} failed: {e.strerror or e}")

        elapsed_ms = round((time.perf_counter() - start_time) * 1000.0, 3)

        try:
            ssl_object = writer.get_extra_info("ssl_object")
            cert: Dict[str, Any] = ssl_object.getpeercert() if ssl_object else {}
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (OSError, ssl.SSLError):
                pass  # close_notify not acknowledged

        if not cert:
            if config.verify:
                return context.down("Server did not present a certificate")
            return context.up("Handshake completed (certificate not inspected)", ping=elapsed_ms)

        return self._evaluate_certificate(config, cert, context, elapsed_ms)

    @staticmethod
    def _evaluate_certificate(
        config: TLSConfig,
        cert: Dict[str, Any],
        context: ProbeContext,
        elapsed_ms: float,
    ) -> ProbeResult:
        now = datetime.now(timezone.utc)
        not_before = _parse_cert_time(cert.get("notBefore"))
        not_after = _parse_cert_time(cert.get("notAfter"))
        subject = _common_name(cert.get("subject")) or config.host

        if not_before and now < not_before:
            return context.down(
                f"Certificate for {subject} not valid until {not_before:%Y-%m-%d}"
            )

        if not_after is None:
            return context.down(f"Certificate for {subject} has no expiry date")

        if now > not_after:
            return context.down(f"Certificate for {subject} expired on {not_after:%Y-%m-%d}")

        days_remaining = (not_after - now).days
        if days_remaining < config.expiry_days:
            return context.down(
                f"Certificate for {subject} expires in {days_remaining} days "
                f"(threshold {config.expiry_days})"
            )

        issuer = _common_name(cert.get("issuer")) or "unknown issuer"
        logger.debug(
            f"[TLS] {config.host} → issuer={issuer}, expires={not_after:%Y-%m-%d}, "
            f"days_left={days_remaining}"
        )
        return context.up(
            f"Certificate valid for {days_remaining} days (issuer {issuer})",
            ping=elapsed_ms,
        )
