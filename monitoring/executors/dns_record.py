"""
DNS executor: resolve a record via dnspython's async resolver and
optionally compare the answers with an expected value.
"""

from __future__ import annotations

import time
from typing import List, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver
from pydantic import Field, field_validator

from config.constants import DNSRecordTypes, MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger
from utils.validators import URLValidator


logger = get_logger("DNSExecutor")


class DNSConfig(ExecutorConfig):
    hostname: str
    record_type: DNSRecordTypes = DNSRecordTypes.A
    resolver: Optional[str] = Field(default=None, description="Nameserver IP; system default when unset")
    port: int = Field(default=53, ge=1, le=65535)
    expected_value: Optional[str] = None

    @field_validator("hostname")
    @classmethod
    def validate_hostname(cls, v: str) -> str:
        if not URLValidator.is_valid_domain(v) and not URLValidator.is_valid_host(v):
            raise ValueError("must be a domain name")
        return v.rstrip(".")

    @field_validator("resolver")
    @classmethod
    def validate_resolver(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not URLValidator.is_valid_ip(v):
            raise ValueError("must be an IP address")
        return v


class DNSExecutor(Executor):
    """DNS resolution check."""

    type = MonitorType.DNS.value
    config_model = DNSConfig

    @staticmethod
    def _build_resolver(config: DNSConfig) -> dns.asyncresolver.Resolver:
        if config.resolver:
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.nameservers = [config.resolver]
        else:
            resolver = dns.asyncresolver.Resolver()
        resolver.port = config.port
        return resolver

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: DNSConfig = self.parse(monitor)
        record_type = config.record_type.value
        resolver = self._build_resolver(config)
        start_time = time.perf_counter()

        try:
            answer = await resolver.resolve(
                config.hostname,
                record_type,
                lifetime=max(context.remaining(), 0.001),
            )
        except dns.resolver.NXDOMAIN:
            return context.down(f"Domain {config.hostname} does not exist (NXDOMAIN)")
        except dns.resolver.NoAnswer:
            return context.down(f"No {record_type} record for {config.hostname}")
        except dns.resolver.NoNameservers:
            return context.down(f"No nameserver could answer for {config.hostname}")
        except dns.exception.Timeout:
            return context.down(f"DNS resolution for {config.hostname} timed out")
        except dns.exception.DNSException as e:
            return context.down(f"DNS error: {str(e)[:200]}")

        elapsed_ms = round((time.perf_counter() - start_time) * 1000.0, 3)
        values: List[str] = [rdata.to_text().rstrip(".") for rdata in answer]

        if config.expected_value is not None:
            expected = config.expected_value.rstrip(".")
            if expected not in values:
                return context.down(
                    f"{record_type} {config.hostname} resolved to {', '.join(values)}, "
                    f"expected {expected}"
                )

        logger.debug(f"[DNS] {config.hostname} ({record_type}) → {values} in {elapsed_ms}ms")
        return context.up(f"{record_type}: {', '.join(values)}", ping=elapsed_ms)
