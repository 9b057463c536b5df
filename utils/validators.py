"""
============================================================================
PULSEWATCH - VALIDATORS UTILITY
============================================================================
Target validation helpers used by executor config models.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import ipaddress
import re
from urllib.parse import urlparse

import validators as external_validators


# ============================================================================
# URL / HOST VALIDATORS
# ============================================================================

class URLValidator:
    """
    URL and host validation.
    """

    SCHEMES = ("http", "https")

    # Single-label hosts such as "localhost" or docker service names
    LABEL_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")

    @staticmethod
    def is_valid_url(url: str) -> bool:
        """
        Check if an http(s) URL is valid.

        Args:
            url: URL to validate

        Returns:
            True if valid, False otherwise
        """
        parsed = urlparse(url)
        if parsed.scheme not in URLValidator.SCHEMES or not parsed.hostname:
            return False

        if external_validators.url(url, simple_host=True) is True:
            return True

        # validators rejects private hosts like http://api:8080/health
        return URLValidator.is_valid_host(parsed.hostname)

    @staticmethod
    def is_valid_ip(ip: str) -> bool:
        """
        Check if IP address is valid.

        Args:
            ip: IP address to validate

        Returns:
            True if valid, False otherwise
        """
        try:
            ipaddress.ip_address(ip)
            return True
        except ValueError:
            return False

    @staticmethod
    def is_valid_domain(domain: str) -> bool:
        return external_validators.domain(domain.rstrip(".")) is True

    @staticmethod
    def is_valid_host(host: str) -> bool:
        """
        Check if a hostname, domain or IP literal is valid.

        Args:
            host: Host to validate

        Returns:
            True if valid, False otherwise
        """
        host = host.strip().strip("[]")
        if not host:
            return False

        return (
            URLValidator.is_valid_ip(host)
            or URLValidator.is_valid_domain(host)
            or bool(URLValidator.LABEL_PATTERN.match(host))
        )
