"""
Authentication module — Supports certificate-based and delegated device-code auth.
Uses MSAL for token acquisition against Microsoft Identity Platform.
"""

from __future__ import annotations

import base64
import getpass
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives.serialization import pkcs12, Encoding, PrivateFormat, NoEncryption
from cryptography.hazmat.primitives.hashes import SHA1
import msal

from ..config import (
    AUTHORITY_BASE_URL,
    CERT_PASSWORD_ENV,
    GRAPH_SCOPES,
    REQUIRED_PERMISSIONS,
    AuthConfig,
)

logger = logging.getLogger("entra_blog.auth")


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


def load_certificate_credential(cert_path: str, password: str) -> dict:
    """
    Read a base64-encoded PFX and return an MSAL client_credential dict
    (thumbprint + PEM private key).
    """
    try:
        with open(cert_path, "r") as f:
            cert_base64 = f.read().strip()

        cert_bytes = base64.b64decode(cert_base64)
        password_bytes = password.encode("utf-8") if password else None

        private_key, certificate, _ = pkcs12.load_key_and_certificates(
            cert_bytes, password_bytes
        )
    except FileNotFoundError:
        raise AuthenticationError(
            f"Certificate file not found: {cert_path}. "
            "Pass --cert-path or set cert_path on the profile."
        )
    except ValueError as e:
        raise AuthenticationError(f"Failed to load certificate: {e}")

    if private_key is None or certificate is None:
        raise AuthenticationError(
            f"Certificate file {cert_path} has no private key or certificate."
        )

    private_key_pem = private_key.private_bytes(
        Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
    ).decode("utf-8")
    thumbprint = certificate.fingerprint(SHA1()).hex()
    logger.info(f"Certificate loaded. Thumbprint: {thumbprint}")

    return {"thumbprint": thumbprint, "private_key": private_key_pem}


class Authenticator:
    """
    Handles MSAL-based authentication for Microsoft Graph and Azure Resource Manager.
    Supports:
      - Certificate-based app-only authentication
      - Delegated authentication (device code flow)

    One MSAL application is built per run; tokens for further scopes come
    from its in-memory cache when possible.
    """

    def __init__(self, config: AuthConfig):
        self.config = config
        self._app = None
        self._account = None
        self._tokens: dict[str, str] = {}

    def acquire_token(self, scopes: Optional[list[str]] = None) -> str:
        """Acquire an access token for the given scopes (Graph by default)."""
        scopes = scopes or GRAPH_SCOPES
        key = " ".join(scopes)
        if key in self._tokens:
            return self._tokens[key]

        if self.config.mode == "certificate":
            token = self._acquire_certificate_token(scopes)
        elif self.config.mode == "delegated":
            token = self._acquire_delegated_token(scopes)
        else:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")

        self._tokens[key] = token
        return token

    def _acquire_certificate_token(self, scopes: list[str]) -> str:
        """Acquire token using certificate-based client credentials."""
        cert_config = self.config.certificate
        if not cert_config:
            raise AuthenticationError("Certificate auth config not provided.")

        if self._app is None:
            logger.info("Authenticating with certificate-based app credentials...")
            password = cert_config.certificate_password
            if not password:
                password = os.environ.get(CERT_PASSWORD_ENV, "")
            if not password:
                password = getpass.getpass("Enter the certificate password: ")

            credential = load_certificate_credential(
                cert_config.certificate_path, password
            )
            self._app = msal.ConfidentialClientApplication(
                client_id=cert_config.client_id,
                authority=f"{AUTHORITY_BASE_URL}/{cert_config.tenant_id}",
                client_credential=credential,
            )

        result = self._app.acquire_token_for_client(scopes=scopes)
        return self._token_from_result(result, "Certificate auth")

    def _acquire_delegated_token(self, scopes: list[str]) -> str:
        """Acquire token using delegated (device code) flow."""
        deleg_config = self.config.delegated
        if not deleg_config:
            raise AuthenticationError("Delegated auth config not provided.")

        if self._app is None:
            self._app = msal.PublicClientApplication(
                client_id=deleg_config.client_id,
                authority=f"{AUTHORITY_BASE_URL}/{deleg_config.tenant_id}",
            )

        # A second scope after sign-in comes from the refresh token silently
        if self._account is not None:
            result = self._app.acquire_token_silent(scopes, account=self._account)
            if result and "access_token" in result:
                return result["access_token"]

        logger.info("Initiating device code authentication flow...")
        flow = self._app.initiate_device_flow(scopes=scopes)
        if "user_code" not in flow:
            raise AuthenticationError(
                f"Device code flow failed: {flow.get('error_description', 'Unknown')}"
            )

        print(f"\n{'='*60}")
        print(f"  To sign in, open: {flow['verification_uri']}")
        print(f"  Enter code: {flow['user_code']}")
        print(f"{'='*60}\n")

        result = self._app.acquire_token_by_device_flow(flow)
        token = self._token_from_result(result, "Delegated auth")
        accounts = self._app.get_accounts()
        if accounts:
            self._account = accounts[0]
        return token

    @staticmethod
    def _token_from_result(result: dict, label: str) -> str:
        if "access_token" in result:
            logger.info(f"{label} successful.")
            return result["access_token"]
        error = result.get("error_description", result.get("error", "Unknown"))
        raise AuthenticationError(f"{label} failed: {error}")

    @staticmethod
    def list_required_permissions(automation: str) -> dict[str, str]:
        """Return the permissions an automation needs."""
        return REQUIRED_PERMISSIONS.get(automation, {})
